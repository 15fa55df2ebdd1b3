"""FastAPI application exposing the SpendShare endpoints."""
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import List

from fastapi import Depends, FastAPI, HTTPException, Path, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__, crud, database, schemas
from .config import get_settings
from .logging import setup_logger
from .security import TokenIdentity, require_identity

LOG = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    settings = get_settings()
    setup_logger("spendshare", json_format=settings.json_logs, level=settings.log_level)
    database.init_db()
    LOG.info("SpendShare backend %s ready", __version__)
    yield


app = FastAPI(title="SpendShare Backend", version=__version__, lifespan=lifespan)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = round((time.perf_counter() - started) * 1000, 2)
    LOG.info(
        "%s %s -> %s",
        request.method,
        request.url.path,
        response.status_code,
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        },
    )
    return response


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    if first.get("type") == "json_invalid":
        return "Malformed JSON body"
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "path", "query")]
    message = str(first.get("msg", "Invalid value")).removeprefix("Value error, ")
    if location:
        return f"{'.'.join(location)}: {message}"
    return message


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": _describe_validation_error(exc)},
    )


@app.post(
    "/user",
    response_model=schemas.Envelope[schemas.IdRead],
    status_code=status.HTTP_201_CREATED,
)
def register_user(user_in: schemas.UserCreate, db: Session = Depends(database.get_db)):
    try:
        user = crud.register_user(db, user_in)
    except crud.EntityConflictError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"message": "User registered", "data": schemas.IdRead(id=user.id)}


@app.post("/login", response_model=schemas.Envelope[schemas.LoginRead])
def login(login_in: schemas.LoginRequest, db: Session = Depends(database.get_db)):
    try:
        result = crud.login(db, login_in)
    except crud.EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except crud.InvalidCredentialsError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"message": "Logged in", "data": result}


@app.get("/group", response_model=schemas.Envelope[List[schemas.GroupRead]])
def list_groups(
    db: Session = Depends(database.get_db),
    _: TokenIdentity = Depends(require_identity),
):
    groups = [schemas.GroupRead.model_validate(group) for group in crud.list_groups(db)]
    return {"message": "Groups retrieved", "data": groups}


@app.get("/group/{group_id}", response_model=schemas.Envelope[List[schemas.GroupRead]])
def get_group(
    group_id: int = Path(..., ge=1, le=schemas.MAX_ID),
    db: Session = Depends(database.get_db),
    _: TokenIdentity = Depends(require_identity),
):
    groups = [schemas.GroupRead.model_validate(group) for group in crud.find_groups(db, group_id)]
    return {"message": "Group retrieved", "data": groups}


@app.post(
    "/group",
    response_model=schemas.Envelope[schemas.IdRead],
    status_code=status.HTTP_201_CREATED,
)
def create_group(
    group_in: schemas.GroupCreate,
    db: Session = Depends(database.get_db),
    _: TokenIdentity = Depends(require_identity),
):
    try:
        group = crud.create_group(db, group_in)
    except crud.EntityConflictError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except crud.EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return {"message": "Group created", "data": schemas.IdRead(id=group.id)}


@app.post(
    "/group/join",
    response_model=schemas.Envelope[schemas.IdRead],
    status_code=status.HTTP_201_CREATED,
)
def join_group(
    join_in: schemas.GroupJoin,
    db: Session = Depends(database.get_db),
    _: TokenIdentity = Depends(require_identity),
):
    try:
        user = crud.join_group(db, join_in)
    except crud.EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except crud.InvalidCredentialsError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"message": "User added to group", "data": schemas.IdRead(id=user.id)}


@app.post(
    "/group/leave",
    response_model=schemas.Envelope[schemas.IdRead],
    status_code=status.HTTP_201_CREATED,
)
def leave_group(
    leave_in: schemas.GroupLeave,
    db: Session = Depends(database.get_db),
    _: TokenIdentity = Depends(require_identity),
):
    try:
        user = crud.leave_group(db, leave_in)
    except crud.EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return {"message": "User removed from group", "data": schemas.IdRead(id=user.id)}


@app.get("/spending/{user_id}", response_model=schemas.Envelope[List[schemas.SpendingRead]])
def list_spendings(
    user_id: int = Path(..., ge=1, le=schemas.MAX_ID),
    db: Session = Depends(database.get_db),
    _: TokenIdentity = Depends(require_identity),
):
    spendings = [schemas.SpendingRead.model_validate(item) for item in crud.list_spendings(db, user_id)]
    return {"message": "Spendings retrieved", "data": spendings}


@app.post(
    "/spending",
    response_model=schemas.Envelope[schemas.IdRead],
    status_code=status.HTTP_201_CREATED,
)
def create_spending(
    spending_in: schemas.SpendingWrite,
    db: Session = Depends(database.get_db),
    _: TokenIdentity = Depends(require_identity),
):
    try:
        spending = crud.create_spending(db, spending_in)
    except crud.EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return {"message": "Spending created", "data": schemas.IdRead(id=spending.id)}


@app.put("/spending/{spending_id}", status_code=status.HTTP_204_NO_CONTENT)
def update_spending(
    update_in: schemas.SpendingWrite,
    spending_id: int = Path(..., ge=1, le=schemas.MAX_ID),
    db: Session = Depends(database.get_db),
    _: TokenIdentity = Depends(require_identity),
) -> None:
    try:
        crud.update_spending(db, spending_id, update_in)
    except crud.EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@app.delete("/spending/{spending_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_spending(
    spending_id: int = Path(..., ge=1, le=schemas.MAX_ID),
    db: Session = Depends(database.get_db),
    _: TokenIdentity = Depends(require_identity),
) -> None:
    try:
        crud.delete_spending(db, spending_id)
    except crud.EntityNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@app.get("/health", tags=["system"])
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
