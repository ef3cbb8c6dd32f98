import logging
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from psycopg import AsyncConnection
from psycopg.errors import UniqueViolation
from pydantic import BaseModel, Field

from .config import Settings
from .database import get_db_connection
from .dependencies import get_app_settings
from .security import (
    DUMMY_PASSWORD_HASH,
    TokenError,
    decode_token,
    hash_password,
    issue_token,
    verify_password,
)

logger = logging.getLogger(__name__)

http_bearer = HTTPBearer(auto_error=False)
router = APIRouter(prefix="/api/auth", tags=["auth"])

UNAUTHENTICATED_DETAIL = "Not authenticated"
INVALID_LOGIN_DETAIL = "Invalid email or password"
REGISTRATION_FAILED_DETAIL = "User registration failed"


class AuthUserResponse(BaseModel):
    id: UUID
    email: str
    created_at: datetime


class AuthResponse(BaseModel):
    token: str
    user: AuthUserResponse


class RegisterRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=128)


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=128)


def _unauthenticated() -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=UNAUTHENTICATED_DETAIL,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _normalize_email(email: str) -> str:
    normalized = email.strip().lower()
    if not normalized or "@" not in normalized:
        raise HTTPException(status_code=422, detail="Invalid email")
    return normalized


async def _fetch_user(connection: AsyncConnection, user_id: UUID) -> dict | None:
    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            SELECT id, email, created_at
            FROM users
            WHERE id = %s
            """,
            (user_id,),
        )
        return await cursor.fetchone()


async def _fetch_user_credentials(connection: AsyncConnection, email: str) -> dict | None:
    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            SELECT id, email, password_hash, created_at
            FROM users
            WHERE LOWER(email) = LOWER(%s)
            """,
            (email,),
        )
        return await cursor.fetchone()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    settings: Settings = Depends(get_app_settings),
    connection: AsyncConnection = Depends(get_db_connection),
) -> AuthUserResponse:
    """
    Resolve the bearer token to a stored user.

    Every failure (no header, bad or expired token, deleted account) gives the
    same 401 so callers cannot tell the causes apart.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _unauthenticated()

    try:
        subject = decode_token(
            credentials.credentials,
            secret=settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )
        user_id = UUID(subject)
    except (TokenError, ValueError) as exc:
        logger.info("Rejected bearer token: %s", type(exc).__name__)
        raise _unauthenticated() from exc

    user_row = await _fetch_user(connection, user_id)
    if user_row is None:
        logger.info("Rejected token for unknown user", extra={"user_id": user_id})
        raise _unauthenticated()

    return AuthUserResponse.model_validate(user_row)


async def get_current_user_id(
    user: AuthUserResponse = Depends(get_current_user),
) -> UUID:
    return user.id


@router.post("/register", response_model=AuthUserResponse, status_code=201)
async def register(
    payload: RegisterRequest,
    connection: AsyncConnection = Depends(get_db_connection),
) -> AuthUserResponse:
    email = _normalize_email(payload.email)
    password_hash = await run_in_threadpool(hash_password, payload.password)

    async with connection.cursor() as cursor:
        try:
            await cursor.execute(
                """
                INSERT INTO users (email, password_hash)
                VALUES (%s, %s)
                RETURNING id, email, created_at
                """,
                (email, password_hash),
            )
        except UniqueViolation as exc:
            # Same answer as any other failed insert; no account enumeration.
            raise HTTPException(status_code=400, detail=REGISTRATION_FAILED_DETAIL) from exc

        user_row = await cursor.fetchone()

    logger.info("Registered user", extra={"user_id": user_row["id"]})
    return AuthUserResponse.model_validate(user_row)


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    settings: Settings = Depends(get_app_settings),
    connection: AsyncConnection = Depends(get_db_connection),
) -> AuthResponse:
    email = _normalize_email(payload.email)
    user_row = await _fetch_user_credentials(connection, email)

    stored_hash = user_row["password_hash"] if user_row is not None else DUMMY_PASSWORD_HASH
    password_ok = await run_in_threadpool(verify_password, payload.password, stored_hash)

    if user_row is None or not password_ok:
        raise HTTPException(status_code=401, detail=INVALID_LOGIN_DETAIL)

    token = issue_token(
        user_row["id"],
        secret=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return AuthResponse(token=token, user=AuthUserResponse.model_validate(user_row))


@router.get("/me", response_model=AuthUserResponse)
async def me(user: AuthUserResponse = Depends(get_current_user)) -> AuthUserResponse:
    return user
