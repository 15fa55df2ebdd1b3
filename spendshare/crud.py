"""CRUD operations for users, groups and spendings."""
from __future__ import annotations

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from . import models, schemas, security

LOG = logging.getLogger(__name__)


class EntityNotFoundError(RuntimeError):
    """Raised when an entity cannot be located in the database."""


class EntityConflictError(RuntimeError):
    """Raised when a unique constraint is violated."""


class InvalidCredentialsError(RuntimeError):
    """Raised when a login or group password does not match."""


def get_user(session: Session, user_id: int) -> models.User:
    user = session.get(models.User, user_id)
    if user is None:
        raise EntityNotFoundError("User not found")
    return user


def get_user_by_email(session: Session, email: str) -> models.User | None:
    stmt = select(models.User).where(models.User.email == email)
    return session.scalars(stmt).first()


def register_user(session: Session, user_in: schemas.UserCreate) -> models.User:
    if get_user_by_email(session, user_in.email) is not None:
        raise EntityConflictError("Email already registered")
    user = models.User(
        name=user_in.name,
        email=user_in.email,
        password=security.hash_password(user_in.password),
    )
    session.add(user)
    try:
        session.flush()
    except IntegrityError as exc:  # pragma: no cover - concurrent registration
        raise EntityConflictError("Email already registered") from exc
    LOG.info("Registered user %s", user.id)
    return user


def login(session: Session, login_in: schemas.LoginRequest) -> schemas.LoginRead:
    user = get_user_by_email(session, login_in.email)
    if user is None:
        raise EntityNotFoundError("User not found")
    if not security.verify_password(login_in.password, user.password):
        LOG.warning("Failed login for user %s", user.id)
        raise InvalidCredentialsError("Incorrect email or password")
    token = security.issue_token(user.id, user.email)
    LOG.info("User %s logged in", user.id)
    return schemas.LoginRead(user_id=user.id, token=token)


def _groups_query():
    return (
        select(models.Group)
        .options(selectinload(models.Group.users).selectinload(models.User.spendings))
        .order_by(models.Group.id)
        .execution_options(populate_existing=True)
    )


def list_groups(session: Session) -> List[models.Group]:
    return list(session.scalars(_groups_query()))


def find_groups(session: Session, group_id: int) -> List[models.Group]:
    """Return the group with ``group_id`` as a list of zero or one entries."""
    stmt = _groups_query().where(models.Group.id == group_id)
    return list(session.scalars(stmt))


def get_group(session: Session, group_id: int) -> models.Group:
    group = session.get(models.Group, group_id)
    if group is None:
        raise EntityNotFoundError("Group not found")
    return group


def create_group(session: Session, group_in: schemas.GroupCreate) -> models.Group:
    """Create a group and make the creating user its first member.

    Both writes share the caller's transaction, so a failure while assigning
    the membership leaves no orphan group behind once the session rolls back.
    """
    existing = session.scalars(select(models.Group).where(models.Group.name == group_in.name)).first()
    if existing is not None:
        raise EntityConflictError("A group with this name already exists")
    user = get_user(session, group_in.user_id)

    group = models.Group(name=group_in.name, password=security.hash_password(group_in.password))
    session.add(group)
    try:
        session.flush()
    except IntegrityError as exc:  # pragma: no cover - concurrent creation
        raise EntityConflictError("A group with this name already exists") from exc

    user.group = group
    session.flush()
    LOG.info("User %s created group %s", user.id, group.id)
    return group


def join_group(session: Session, join_in: schemas.GroupJoin) -> models.User:
    group = get_group(session, join_in.group_id)
    if not security.verify_password(join_in.password, group.password):
        LOG.warning("Wrong password for group %s from user %s", group.id, join_in.user_id)
        raise InvalidCredentialsError("Incorrect group password")
    user = get_user(session, join_in.user_id)
    user.group = group
    session.flush()
    LOG.info("User %s joined group %s", user.id, group.id)
    return user


def leave_group(session: Session, leave_in: schemas.GroupLeave) -> models.User:
    group = get_group(session, leave_in.group_id)
    user = get_user(session, leave_in.user_id)
    user.group = None
    session.flush()
    LOG.info("User %s left group %s", user.id, group.id)
    return user


def list_spendings(session: Session, user_id: int) -> List[models.Spending]:
    stmt = (
        select(models.Spending)
        .where(models.Spending.user_id == user_id)
        .order_by(models.Spending.day, models.Spending.id)
    )
    return list(session.scalars(stmt))


def get_spending(session: Session, spending_id: int) -> models.Spending:
    spending = session.get(models.Spending, spending_id)
    if spending is None:
        raise EntityNotFoundError("Spending not found")
    return spending


def create_spending(session: Session, spending_in: schemas.SpendingWrite) -> models.Spending:
    user = get_user(session, spending_in.user_id)
    spending = models.Spending(**spending_in.model_dump(exclude={"user_id"}), user=user)
    session.add(spending)
    session.flush()
    LOG.info("Created spending %s for user %s", spending.id, spending.user_id)
    return spending


def update_spending(
    session: Session, spending_id: int, update_in: schemas.SpendingWrite
) -> models.Spending:
    spending = get_spending(session, spending_id)
    user = get_user(session, update_in.user_id)
    # Full replacement: an omitted name clears the stored label.
    for field, value in update_in.model_dump(exclude={"user_id"}).items():
        setattr(spending, field, value)
    spending.user = user
    session.flush()
    LOG.info("Updated spending %s", spending.id)
    return spending


def delete_spending(session: Session, spending_id: int) -> int:
    spending = get_spending(session, spending_id)
    session.delete(spending)
    session.flush()
    LOG.info("Deleted spending %s", spending_id)
    return spending_id
