from __future__ import annotations

import pytest
from sqlalchemy import func, select

from spendshare import crud, models, schemas, security


def test_register_user_hashes_password(db_session):
    user = crud.register_user(
        db_session, schemas.UserCreate(name="Ana", email="ana@example.com", password="s3cret")
    )

    assert user.id is not None
    assert user.group_id is None
    assert user.password != "s3cret"
    assert security.verify_password("s3cret", user.password)


def test_register_duplicate_email_creates_no_row(db_session, user):
    with pytest.raises(crud.EntityConflictError):
        crud.register_user(
            db_session, schemas.UserCreate(name="Other", email=user.email, password="different")
        )

    count = db_session.scalar(select(func.count()).select_from(models.User))
    assert count == 1


@pytest.mark.parametrize("field", ["name", "email", "password"])
def test_user_payload_rejects_empty_fields(field):
    payload = {"name": "Ana", "email": "ana@example.com", "password": "s3cret", field: ""}
    with pytest.raises(ValueError):
        schemas.UserCreate(**payload)


def test_login_returns_token_for_same_identity(db_session, user):
    result = crud.login(db_session, schemas.LoginRequest(email=user.email, password="s3cret"))

    assert result.user_id == user.id
    identity = security.authenticate(result.token)
    assert identity.user_id == user.id
    assert identity.email == user.email


def test_login_wrong_password(db_session, user):
    with pytest.raises(crud.InvalidCredentialsError):
        crud.login(db_session, schemas.LoginRequest(email=user.email, password="wrong"))


def test_login_unknown_email(db_session):
    with pytest.raises(crud.EntityNotFoundError):
        crud.login(db_session, schemas.LoginRequest(email="ghost@example.com", password="x"))
