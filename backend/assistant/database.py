import logging
from collections.abc import AsyncIterator

from fastapi import HTTPException
from psycopg import AsyncConnection
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

logger = logging.getLogger(__name__)

# Shared async pool used by FastAPI dependencies.
pool: AsyncConnectionPool | None = None

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        email TEXT NOT NULL,
        password_hash TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS users_email_lower_idx ON users (LOWER(email))",
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        completed BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    "CREATE INDEX IF NOT EXISTS tasks_user_created_idx ON tasks (user_id, created_at DESC)",
    """
    CREATE TABLE IF NOT EXISTS expenses (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        category TEXT NOT NULL,
        amount NUMERIC(12, 2) NOT NULL CHECK (amount > 0),
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    "CREATE INDEX IF NOT EXISTS expenses_user_created_idx ON expenses (user_id, created_at DESC)",
    # clock_timestamp() so a user/assistant pair written in one transaction
    # still gets distinct, ordered timestamps; seq breaks any remaining tie.
    """
    CREATE TABLE IF NOT EXISTS chat_messages (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        seq BIGINT GENERATED ALWAYS AS IDENTITY,
        user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        role TEXT NOT NULL CHECK (role IN ('system', 'user', 'assistant')),
        content TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp()
    )
    """,
    "CREATE INDEX IF NOT EXISTS chat_messages_user_recent_idx ON chat_messages (user_id, created_at DESC, seq DESC)",
)


async def init_db_pool(database_url: str, max_size: int = 5) -> None:
    global pool

    # Keep app booting in non-DB contexts; endpoints will fail explicitly if used.
    if not database_url:
        logger.warning("DATABASE_URL is not configured; store-backed endpoints will fail")
        return

    pool = AsyncConnectionPool(
        conninfo=database_url,
        open=False,
        min_size=1,
        max_size=max_size,
        kwargs={"autocommit": True, "row_factory": dict_row},
    )
    await pool.open()
    await ensure_schema()
    logger.info("Database pool opened (max_size=%s)", max_size)


async def ensure_schema() -> None:
    """Create tables and indexes if they do not exist yet."""
    if pool is None:
        return

    async with pool.connection() as connection:
        async with connection.transaction():
            async with connection.cursor() as cursor:
                for statement in SCHEMA_STATEMENTS:
                    await cursor.execute(statement)


async def close_db_pool() -> None:
    global pool

    if pool is None:
        return

    await pool.close()
    pool = None


async def get_db_connection() -> AsyncIterator[AsyncConnection]:
    if pool is None:
        logger.error("Store request with no database pool; DATABASE_URL is not configured")
        raise HTTPException(status_code=500, detail="Internal server error")

    async with pool.connection() as connection:
        yield connection
