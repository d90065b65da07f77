"""Client for the hosted backend's authentication service.

Password sign-in, sign-out and user lookup go over HTTP to `/auth/v1`.
Session-change notifications are delivered in-process to listeners
registered with `on_auth_state_change`.
"""

import logging
import time
import uuid
from collections.abc import Callable
from enum import Enum
from typing import Any

import httpx

from restaurant_menu_admin.models.auth_models import Session, User
from restaurant_menu_admin.observability.metrics import record_auth_event, record_backend_request
from restaurant_menu_admin.services.errors import AuthError

logger = logging.getLogger(__name__)


class AuthChangeEvent(str, Enum):
    """Session-change notifications delivered to listeners."""

    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"


AuthListener = Callable[[AuthChangeEvent, Session | None], None]


class Subscription:
    """Handle for a registered session-change listener."""

    def __init__(self, client: "AuthClient", callback: AuthListener) -> None:
        self.id = uuid.uuid4().hex
        self.callback = callback
        self._client = client

    @property
    def active(self) -> bool:
        return self.id in self._client.listeners

    def unsubscribe(self) -> None:
        """Release the listener. Calling this more than once is harmless."""
        self._client.listeners.pop(self.id, None)


class AuthClient:
    """Auth API client with in-process session-change notifications."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the auth client.

        Args:
            url: Project base URL
            anon_key: Public anon key of the project
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used to stub the backend in tests)
        """
        self.auth_url = f"{url.rstrip('/')}/auth/v1"
        self.anon_key = anon_key
        self.timeout = timeout
        self.transport = transport
        self.listeners: dict[str, Subscription] = {}

    async def _send(
        self,
        method: str,
        path: str,
        access_token: str | None = None,
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {access_token or self.anon_key}",
        }
        started = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                return await client.request(
                    method, f"{self.auth_url}/{path}", params=params, json=json, headers=headers
                )
        except httpx.RequestError as e:
            logger.error(f"Auth request {method} {path} failed: {e}")
            raise AuthError(f"Could not reach authentication service: {e}") from e
        finally:
            record_backend_request(f"auth/{path}", method, time.perf_counter() - started)

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        """Exchange email and password for a session.

        Raises:
            AuthError: If the credentials are rejected or the service is unreachable
        """
        try:
            response = await self._send(
                "POST",
                "token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
            )
        except AuthError:
            record_auth_event("sign_in", success=False)
            raise

        if response.is_error:
            record_auth_event("sign_in", success=False)
            error = AuthError.from_response(response)
            logger.info(f"Sign-in rejected for {email}: {error.message}")
            raise error

        session = Session.model_validate(response.json())
        record_auth_event("sign_in")
        logger.info(f"Admin signed in: {email}")
        self._notify(AuthChangeEvent.SIGNED_IN, session)
        return session

    async def sign_out(self, session: Session) -> None:
        """End `session` on the backend and notify listeners.

        A token the backend no longer recognizes counts as already signed out.

        Raises:
            AuthError: If the backend fails for any other reason
        """
        response = await self._send("POST", "logout", access_token=session.access_token)

        if response.is_error and response.status_code not in (401, 403, 404):
            record_auth_event("sign_out", success=False)
            raise AuthError.from_response(response)

        record_auth_event("sign_out")
        self._notify(AuthChangeEvent.SIGNED_OUT, session)

    async def get_user(self, access_token: str) -> User | None:
        """Look up the user owning `access_token`.

        Returns:
            The user, or None when the token is missing, expired or revoked

        Raises:
            AuthError: If the lookup itself fails
        """
        if not access_token:
            return None

        response = await self._send("GET", "user", access_token=access_token)
        if response.status_code in (401, 403):
            return None
        if response.is_error:
            raise AuthError.from_response(response)
        return User.model_validate(response.json())

    def on_auth_state_change(self, callback: AuthListener) -> Subscription:
        """Register `callback` for session-change notifications."""
        subscription = Subscription(self, callback)
        self.listeners[subscription.id] = subscription
        return subscription

    def _notify(self, event: AuthChangeEvent, session: Session | None) -> None:
        # Copy: a listener may unsubscribe itself while being notified
        for subscription in list(self.listeners.values()):
            subscription.callback(event, session)
