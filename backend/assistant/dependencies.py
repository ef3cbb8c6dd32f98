"""FastAPI dependencies that expose process-wide objects stored on `app.state`."""

from fastapi import HTTPException, Request

from .ai.groq_client import GroqClient
from .config import Settings


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_chat_client(request: Request) -> GroqClient | None:
    return getattr(request.app.state, "chat_client", None)


def require_chat_client(request: Request) -> GroqClient:
    """Return the Groq client or fail with 503 when AI features are disabled."""
    client = get_chat_client(request)
    if client is None:
        raise HTTPException(status_code=503, detail="AI features are unavailable")
    return client
