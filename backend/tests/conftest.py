"""Shared fixtures: settings, an in-memory fake psycopg connection, a stub Groq client."""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from psycopg.errors import UniqueViolation

# Never pick up a developer's real keys from the environment.
os.environ["GROQ_API_KEY"] = ""
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-the-suite-0123456789")

from assistant.config import Settings  # noqa: E402

TEST_JWT_SECRET = "test-secret-key-for-the-suite-0123456789"


class FakeCursor:
    """Matches the handful of SQL statements the services issue."""

    def __init__(self, connection):
        self.connection = connection
        self._rows = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def execute(self, query, params=None):
        params = params or ()
        normalized = " ".join(query.split())
        self.connection.queries.append(normalized)
        self._rows = []
        store = self.connection

        # users
        if normalized.startswith("INSERT INTO users"):
            email, password_hash = params
            if any(row["email"].lower() == email.lower() for row in store.users.values()):
                raise UniqueViolation("duplicate key value violates unique constraint")
            row = {
                "id": uuid4(),
                "email": email,
                "password_hash": password_hash,
                "created_at": store.next_timestamp(),
            }
            store.users[row["id"]] = row
            self._rows = [row]
            return

        if normalized.startswith("SELECT id, email, created_at FROM users WHERE id = %s"):
            (user_id,) = params
            row = store.users.get(user_id)
            self._rows = [row] if row else []
            return

        if normalized.startswith("SELECT id, email, password_hash, created_at FROM users WHERE LOWER(email)"):
            (email,) = params
            self._rows = [row for row in store.users.values() if row["email"].lower() == email.lower()]
            return

        # tasks
        if normalized.startswith("SELECT id, user_id, title, completed, created_at FROM tasks"):
            (user_id,) = params
            rows = [row for row in store.tasks.values() if row["user_id"] == user_id]
            if "completed = FALSE" in normalized:
                rows = [row for row in rows if not row["completed"]]
            rows.sort(key=lambda item: item["created_at"], reverse=True)
            self._rows = rows
            return

        if normalized.startswith("INSERT INTO tasks"):
            user_id, title = params
            row = {
                "id": uuid4(),
                "user_id": user_id,
                "title": title,
                "completed": False,
                "created_at": store.next_timestamp(),
            }
            store.tasks[row["id"]] = row
            self._rows = [row]
            return

        if normalized.startswith("UPDATE tasks SET"):
            set_clause = normalized.split(" SET ", 1)[1].split(" WHERE ", 1)[0]
            columns = [part.split(" = ")[0].strip() for part in set_clause.split(",")]
            *values, task_id, user_id = params
            row = store.tasks.get(task_id)
            if row and row["user_id"] == user_id:
                row.update(dict(zip(columns, values)))
                self._rows = [row]
            return

        if normalized.startswith("DELETE FROM tasks"):
            task_id, user_id = params
            row = store.tasks.get(task_id)
            if row and row["user_id"] == user_id:
                del store.tasks[task_id]
                self._rows = [{"id": task_id}]
            return

        # expenses
        if normalized.startswith("SELECT id, user_id, category, amount, created_at FROM expenses"):
            (user_id,) = params
            rows = [row for row in store.expenses.values() if row["user_id"] == user_id]
            rows.sort(key=lambda item: item["created_at"], reverse=True)
            self._rows = rows
            return

        if normalized.startswith("INSERT INTO expenses"):
            user_id, category, amount = params
            row = {
                "id": uuid4(),
                "user_id": user_id,
                "category": category,
                "amount": Decimal(str(amount)),
                "created_at": store.next_timestamp(),
            }
            store.expenses[row["id"]] = row
            self._rows = [row]
            return

        if normalized.startswith("DELETE FROM expenses"):
            expense_id, user_id = params
            row = store.expenses.get(expense_id)
            if row and row["user_id"] == user_id:
                del store.expenses[expense_id]
                self._rows = [{"id": expense_id}]
            return

        if normalized.startswith("SELECT category, SUM(amount) AS total FROM expenses"):
            (user_id,) = params
            totals: dict[str, Decimal] = {}
            for row in store.expenses.values():
                if row["user_id"] == user_id:
                    totals[row["category"]] = totals.get(row["category"], Decimal("0")) + row["amount"]
            ordered = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
            self._rows = [{"category": name, "total": total} for name, total in ordered]
            return

        # chat history
        if normalized.startswith("INSERT INTO chat_messages"):
            user_id, role, content = params
            store.seq += 1
            store.messages.append(
                {
                    "id": uuid4(),
                    "seq": store.seq,
                    "user_id": user_id,
                    "role": role,
                    "content": content,
                    "created_at": store.next_timestamp(),
                }
            )
            return

        if normalized.startswith("SELECT id, role, content, created_at FROM chat_messages"):
            user_id, limit = params
            rows = [row for row in store.messages if row["user_id"] == user_id]
            rows.sort(key=lambda item: (item["created_at"], item["seq"]), reverse=True)
            self._rows = rows[:limit]
            return

        raise AssertionError(f"Unhandled query: {normalized}")

    async def fetchone(self):
        if not self._rows:
            return None
        return self._rows[0]

    async def fetchall(self):
        return list(self._rows)


class FakeTransaction:
    def __init__(self, connection):
        self.connection = connection
        self._snapshot = None

    async def __aenter__(self):
        self._snapshot = list(self.connection.messages)
        self.connection.transactions += 1
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self.connection.messages = self._snapshot
        return False


class FakeConnection:
    def __init__(self):
        self.users = {}
        self.tasks = {}
        self.expenses = {}
        self.messages = []
        self.queries = []
        self.transactions = 0
        self.seq = 0
        self._tick = 0

    def next_timestamp(self):
        self._tick += 1
        return datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=self._tick)

    def cursor(self):
        return FakeCursor(self)

    def transaction(self):
        return FakeTransaction(self)

    def add_user(self, email="a@x.com", password_hash="unused"):
        row = {
            "id": uuid4(),
            "email": email,
            "password_hash": password_hash,
            "created_at": self.next_timestamp(),
        }
        self.users[row["id"]] = row
        return row


class StubChatClient:
    """Records every message list it receives and replays canned replies."""

    model = "stub-model"

    def __init__(self, replies=None, error=None):
        self.replies = list(replies or ["stub reply"])
        self.error = error
        self.calls = []

    async def chat(self, messages, options=None):
        self.calls.append(list(messages))
        if self.error is not None:
            raise self.error
        if len(self.replies) > 1:
            return self.replies.pop(0)
        return self.replies[0]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        jwt_secret_key=TEST_JWT_SECRET,
        groq_api_key="",
        database_url="",
        log_level="WARNING",
    )


@pytest.fixture
def fake_db() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def stub_chat_client() -> StubChatClient:
    return StubChatClient()


@pytest.fixture
def make_stub_client():
    return StubChatClient


@pytest.fixture
def make_app(settings, fake_db):
    """Build the real app wired to the fake store and an optional chat client."""
    from assistant.database import get_db_connection
    from assistant.main import create_app

    def _factory(chat_client=None):
        app = create_app(settings)
        app.state.chat_client = chat_client

        async def override_db_connection():
            yield fake_db

        app.dependency_overrides[get_db_connection] = override_db_connection
        return app

    return _factory


@pytest.fixture
def auth_headers(settings, fake_db):
    """Register a user directly in the fake store and return (user_row, headers)."""
    from assistant.security import issue_token

    def _factory(email="a@x.com"):
        user = fake_db.add_user(email=email)
        token = issue_token(user["id"], secret=settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
        return user, {"Authorization": f"Bearer {token}"}

    return _factory
