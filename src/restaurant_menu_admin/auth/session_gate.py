"""Session gate for admin views.

A gate is mounted in front of a protected view. It admits the view only when
the explicit access token handed to it belongs to a live session, and sends
the admin back to the login view when that session goes away.
"""

import logging
from collections.abc import Callable

from restaurant_menu_admin.auth.auth_client import AuthChangeEvent, AuthClient, Subscription
from restaurant_menu_admin.models.auth_models import Session
from restaurant_menu_admin.services.errors import AuthError

logger = logging.getLogger(__name__)

LOGIN_PATH = "/admin"
DASHBOARD_PATH = "/admin/dashboard"

Navigate = Callable[[str], None]


class SessionGate:
    """Admits a protected view only while a session is live.

    Attributes:
        loading: True until a session has been confirmed
        session: The admitted session, None when not admitted
    """

    def __init__(self, auth: AuthClient, navigate: Navigate, login_path: str = LOGIN_PATH) -> None:
        """Initialize the gate.

        Args:
            auth: Auth client used to look up the session and subscribe to changes
            navigate: Called with a path when the gate redirects
            login_path: Where to send the admin when no session is present
        """
        self.auth = auth
        self.navigate = navigate
        self.login_path = login_path
        self.loading = True
        self.session: Session | None = None
        self.subscription: Subscription | None = None

    @property
    def admitted(self) -> bool:
        return self.session is not None and not self.loading

    async def mount(self, access_token: str | None) -> bool:
        """Activate the gate for the session identified by `access_token`.

        A lookup failure is treated exactly like a missing session.

        Returns:
            True if the wrapped view may render, False if the gate redirected
        """
        if self.subscription is None:
            self.subscription = self.auth.on_auth_state_change(self._on_auth_change)

        user = None
        if access_token:
            try:
                user = await self.auth.get_user(access_token)
            except AuthError as e:
                logger.warning(f"Session lookup failed, treating as signed out: {e.message}")

        if user is None:
            logger.info(f"No live session, redirecting to {self.login_path}")
            self.session = None
            self.navigate(self.login_path)
            return False

        self.session = Session(access_token=access_token, user=user)
        self.loading = False
        return True

    def unmount(self) -> None:
        """Tear the gate down and release its session-change listener."""
        if self.subscription is not None:
            self.subscription.unsubscribe()
            self.subscription = None

    def _on_auth_change(self, event: AuthChangeEvent, session: Session | None) -> None:
        if event is AuthChangeEvent.SIGNED_OUT:
            if not self._concerns(session):
                return
            self.session = None
            self.navigate(self.login_path)
        elif event is AuthChangeEvent.SIGNED_IN:
            self.loading = False

    def _concerns(self, session: Session | None) -> bool:
        # One auth client serves every admin; ignore other admins' sign-outs
        if session is None or self.session is None:
            return True
        return session.access_token == self.session.access_token
