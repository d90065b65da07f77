"""FastAPI dependencies for session-gated admin endpoints.

The session token travels in the `sb-access-token` cookie set at login, or
in an `Authorization: Bearer` header for API callers.
"""

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Cookie, Depends, Header, Request

from restaurant_menu_admin.auth.session_gate import LOGIN_PATH, SessionGate
from restaurant_menu_admin.models.auth_models import Session

ACCESS_TOKEN_COOKIE = "sb-access-token"


class LoginRequired(Exception):
    """Raised when a gated endpoint is reached without a live session.

    The application answers it with a redirect to the login view.
    """

    def __init__(self, location: str = LOGIN_PATH) -> None:
        super().__init__(f"Login required, redirecting to {location}")
        self.location = location


def get_access_token(
    sb_access_token: Annotated[str | None, Cookie(alias=ACCESS_TOKEN_COOKIE)] = None,
    authorization: Annotated[str | None, Header()] = None,
) -> str | None:
    """Extract the session token from the cookie or the Authorization header."""
    if sb_access_token:
        return sb_access_token
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token:
            return token.strip()
    return None


async def require_session(
    request: Request,
    access_token: Annotated[str | None, Depends(get_access_token)],
) -> AsyncIterator[Session]:
    """Mount a session gate for the duration of one request.

    Yields:
        The admitted session

    Raises:
        LoginRequired: If the gate redirected instead of admitting
    """
    redirects: list[str] = []
    gate = SessionGate(auth=request.app.state.backend.auth, navigate=redirects.append)
    try:
        admitted = await gate.mount(access_token)
        if not admitted or gate.session is None:
            raise LoginRequired(redirects[-1] if redirects else LOGIN_PATH)
        yield gate.session
    finally:
        gate.unmount()
