"""Pydantic schemas for validating and serialising SpendShare payloads."""
from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Annotated, Any, Final, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")

# Largest value a signed 64-bit INTEGER column can hold.
MAX_ID: Final[int] = 2**63 - 1

EntityId = Annotated[int, Field(ge=1, le=MAX_ID, strict=True)]


class CamelModel(BaseModel):
    """Base model exchanging camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ORMModel(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class Envelope(BaseModel, Generic[T]):
    message: str
    data: T


class IdRead(BaseModel):
    id: int


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class LoginRead(CamelModel):
    user_id: int
    token: str


class GroupCreate(CamelModel):
    user_id: EntityId
    name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)


class GroupJoin(CamelModel):
    user_id: EntityId
    group_id: EntityId
    password: str = Field(..., min_length=1)


class GroupLeave(CamelModel):
    user_id: EntityId
    group_id: EntityId


def parse_day(value: Any) -> Any:
    """Parse ISO-8601 strings (date-only allowed) into datetimes.

    Non-string values are handed back untouched for pydantic's own coercion.
    """

    if not isinstance(value, str):
        return value
    text = value.strip()
    if not text:
        raise ValueError("Day is required")
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValueError("Invalid date format") from exc


def to_naive_utc(value: datetime) -> datetime:
    """Normalise aware datetimes to naive UTC, the storage convention."""

    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


class SpendingWrite(CamelModel):
    """Payload shared by spending creation and full replacement."""

    user_id: EntityId
    day: datetime
    value: float
    name: Optional[str] = Field(None, max_length=255)

    @field_validator("day", mode="before")
    @classmethod
    def _parse_day(cls, value: Any) -> Any:
        return parse_day(value)

    @field_validator("day")
    @classmethod
    def _normalise_day(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @field_validator("value", mode="before")
    @classmethod
    def _reject_bool_value(cls, value: Any) -> Any:
        # bool is an int subclass and would otherwise coerce to 0.0 or 1.0.
        if isinstance(value, bool):
            raise ValueError("Value must be a number")
        return value

    @field_validator("value")
    @classmethod
    def _non_zero_value(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("Value must be a finite number")
        if value == 0:
            raise ValueError("Value is required and cannot be zero")
        return value


class SpendingRead(ORMModel):
    id: int
    name: Optional[str] = None
    day: datetime
    value: float
    user_id: int


class MemberRead(ORMModel):
    id: int
    name: str
    email: str
    spendings: List[SpendingRead] = []


class GroupRead(ORMModel):
    id: int
    name: str
    users: List[MemberRead] = []
