from datetime import UTC, datetime, timedelta, timezone

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from pydantic import ValidationError

from spendshare import schemas

naive_days = st.datetimes(
    min_value=datetime(1970, 1, 2), max_value=datetime(2100, 1, 1)
).map(lambda value: value.replace(microsecond=0))
offsets = st.integers(min_value=-12 * 60, max_value=14 * 60).map(
    lambda minutes: timezone(timedelta(minutes=minutes))
)


@settings(max_examples=50, deadline=None)
@given(naive_days)
def test_iso_string_round_trips(day: datetime) -> None:
    spending = schemas.SpendingWrite(user_id=1, day=day.isoformat(), value=1.0)
    assert spending.day == day


@settings(max_examples=50, deadline=None)
@given(naive_days, offsets)
def test_aware_days_stored_as_naive_utc(day: datetime, offset: timezone) -> None:
    aware = day.replace(tzinfo=offset)
    spending = schemas.SpendingWrite(user_id=1, day=aware.isoformat(), value=1.0)

    assert spending.day.tzinfo is None
    assert spending.day == aware.astimezone(UTC).replace(tzinfo=None)


@settings(max_examples=50, deadline=None)
@given(st.floats(allow_nan=False, allow_infinity=False).filter(lambda value: value != 0))
def test_any_non_zero_value_accepted(value: float) -> None:
    assert schemas.SpendingWrite(user_id=1, day="2024-09-03", value=value).value == value


@settings(max_examples=50, deadline=None)
@given(st.text(alphabet="abcdefghijklmnopqrstuvwxyz ", min_size=1, max_size=20))
def test_words_are_not_days(text: str) -> None:
    with pytest.raises(ValidationError):
        schemas.SpendingWrite(user_id=1, day=text, value=1.0)
