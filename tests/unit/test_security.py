from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
import pytest

from spendshare import security


def test_hash_password_is_salted():
    first = security.hash_password("correct horse")
    second = security.hash_password("correct horse")

    assert first != second
    assert security.verify_password("correct horse", first)
    assert security.verify_password("correct horse", second)


def test_verify_password_rejects_mismatch():
    stored = security.hash_password("correct horse")
    assert not security.verify_password("battery staple", stored)


def test_verify_password_unknown_hash_format():
    assert security.verify_password("anything", "plain-text-not-a-hash") is False


def test_token_round_trip():
    token = security.issue_token(7, "ana@example.com")

    identity = security.authenticate(token)

    assert identity == security.TokenIdentity(user_id=7, email="ana@example.com")


def test_token_valid_for_fifteen_days_by_default():
    issued = datetime(2024, 9, 3, tzinfo=UTC)
    token = security.issue_token(1, "a@b.c", now=issued)

    claims = jwt.decode(token, options={"verify_signature": False})

    assert claims["exp"] - claims["iat"] == int(timedelta(days=15).total_seconds())
    assert claims["id"] == 1
    assert claims["email"] == "a@b.c"


def test_expired_token_rejected():
    token = security.issue_token(
        1, "a@b.c", now=datetime.now(tz=UTC) - timedelta(days=16)
    )
    with pytest.raises(security.InvalidTokenError, match="expired"):
        security.authenticate(token)


def test_token_signed_with_other_secret_rejected():
    token = security.issue_token(1, "a@b.c", secret="another-secret-that-is-long-enough-for-hs256")
    with pytest.raises(security.InvalidTokenError):
        security.authenticate(token)


def test_tampered_token_rejected():
    token = security.issue_token(1, "a@b.c")
    header, payload, signature = token.split(".")
    forged = jwt.encode(
        {"id": 2, "email": "a@b.c", "iat": 0, "exp": 4102444800},
        "guessed-secret-that-is-long-enough-for-hs256",
        algorithm="HS256",
    ).split(".")[1]
    with pytest.raises(security.InvalidTokenError):
        security.authenticate(".".join([header, forged, signature]))


def test_token_without_identity_claims_rejected():
    now = int(datetime.now(tz=UTC).timestamp())
    token = jwt.encode(
        {"iat": now, "exp": now + 60},
        security.get_settings().jwt_secret,
        algorithm=security.JWT_ALGORITHM,
    )
    with pytest.raises(security.InvalidTokenError):
        security.authenticate(token)
