"""FastAPI dependencies for the audit feature."""

from fastapi import Header

from app.features.audit.schemas import Actor


def get_actor(
    x_user_id: str | None = Header(None, max_length=64),
    x_user_email: str | None = Header(None, max_length=255),
    x_user_role: str | None = Header(None, max_length=30),
) -> Actor:
    """Actor from the ``X-User-*`` headers the dashboard forwards."""
    return Actor(user_id=x_user_id, user_email=x_user_email, user_role=x_user_role)
