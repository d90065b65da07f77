"""Admin login form."""

import logging

from restaurant_menu_admin.auth.auth_client import AuthClient
from restaurant_menu_admin.auth.session_gate import DASHBOARD_PATH, Navigate
from restaurant_menu_admin.models.auth_models import Session
from restaurant_menu_admin.observability.decorators import traced
from restaurant_menu_admin.services.errors import AuthError

logger = logging.getLogger(__name__)


class LoginForm:
    """Collects credentials and exchanges them for a session.

    Attributes:
        email: Entered email address
        password: Entered password
        loading: True while sign-in is in flight; the submit control is disabled
        error: Message from the last failed sign-in
        session: Session from the last successful sign-in
    """

    def __init__(self, auth: AuthClient, navigate: Navigate, dashboard_path: str = DASHBOARD_PATH) -> None:
        self.auth = auth
        self.navigate = navigate
        self.dashboard_path = dashboard_path
        self.email = ""
        self.password = ""
        self.loading = False
        self.error: str | None = None
        self.session: Session | None = None

    @property
    def can_submit(self) -> bool:
        return not self.loading

    @traced("login_form.submit")
    async def submit(self, email: str | None = None, password: str | None = None) -> Session | None:
        """Sign in and go to the dashboard.

        Returns:
            The new session, or None if sign-in failed or was already in flight
        """
        if not self.can_submit:
            return None
        if email is not None:
            self.email = email
        if password is not None:
            self.password = password

        self.loading = True
        self.error = None
        try:
            self.session = await self.auth.sign_in_with_password(self.email, self.password)
        except AuthError as e:
            self.error = e.message
            return None
        finally:
            self.loading = False

        self.navigate(self.dashboard_path)
        return self.session
