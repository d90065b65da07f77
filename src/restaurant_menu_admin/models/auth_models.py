"""Authentication models returned by the backend's auth service."""

from pydantic import BaseModel, Field


class User(BaseModel):
    """Authenticated admin user."""

    id: str = Field(..., description="Backend user identifier")
    email: str | None = Field(None, description="Email address used to sign in")


class Session(BaseModel):
    """Authenticated admin session.

    Sessions are passed explicitly to whatever needs them; nothing in this
    package keeps a process-wide current session.
    """

    access_token: str = Field(..., description="Bearer token for backend requests")
    token_type: str = Field(default="bearer")
    refresh_token: str | None = Field(None, description="Token used to renew the session")
    expires_in: int | None = Field(None, description="Seconds until the access token expires")
    user: User | None = Field(None, description="User the session belongs to")
