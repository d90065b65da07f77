"""FastAPI application for the public menu and the admin dashboard."""

import logging
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel

from restaurant_menu_admin.auth.api_dependencies import (
    ACCESS_TOKEN_COOKIE,
    LoginRequired,
    require_session,
)
from restaurant_menu_admin.auth.session_gate import LOGIN_PATH
from restaurant_menu_admin.models.auth_models import Session
from restaurant_menu_admin.models.menu_models import (
    Category,
    CategoryOption,
    MenuItem,
    MenuItemDraft,
    PublicMenu,
    PublicMenuStatus,
)
from restaurant_menu_admin.services.backend_client import BackendClient
from restaurant_menu_admin.services.category_manager import CategoryManager, Confirm, ErrorKind
from restaurant_menu_admin.services.errors import AuthError
from restaurant_menu_admin.services.login_form import LoginForm
from restaurant_menu_admin.services.menu_item_manager import MenuItemManager
from restaurant_menu_admin.services.public_menu_service import PublicMenuService

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str


class LoginViewResponse(BaseModel):
    """What the login view needs to render its form."""

    submit_path: str
    message: str


class LoginRequest(BaseModel):
    """Credentials submitted by the login form."""

    email: str
    password: str


class CategoryCreateRequest(BaseModel):
    """New category submitted by the dashboard."""

    name: str


class CategoryListResponse(BaseModel):
    """Categories by display_order ascending."""

    categories: list[Category]


class MenuItemListResponse(BaseModel):
    """Menu items with the category options and draft defaults for the item form."""

    categories: list[CategoryOption]
    menu_items: list[MenuItem]
    draft: MenuItemDraft


class DashboardResponse(BaseModel):
    """Everything the admin dashboard shows."""

    user_email: str | None
    categories: list[Category]
    menu_items: list[MenuItem]
    category_options: list[CategoryOption]
    draft: MenuItemDraft


Gated = Annotated[Session, Depends(require_session)]


def raise_for_manager(manager: CategoryManager | MenuItemManager) -> None:
    """Translate a manager's failed operation into an HTTP error."""
    if manager.error_kind is ErrorKind.VALIDATION:
        raise HTTPException(status_code=400, detail=manager.error)
    if manager.error_kind is ErrorKind.BACKEND:
        raise HTTPException(status_code=502, detail=manager.error)
    raise HTTPException(status_code=409, detail="Another operation is in progress")


def confirmed_by(flag: bool) -> Confirm:
    """Confirmation callback answering every prompt with `flag`."""

    def confirm(prompt: str) -> bool:
        if not flag:
            logger.info(f"Not confirmed: {prompt}")
        return flag

    return confirm


def create_app(backend_client: BackendClient, secure_cookies: bool = True) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        backend_client: Anonymous client for the hosted backend; gated routes
            derive per-session copies from it
        secure_cookies: Whether the session cookie is restricted to HTTPS

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Restaurant Menu Admin",
        description="Public restaurant menu and admin dashboard for categories and menu items",
        version="1.0.0",
    )

    app.state.backend = backend_client

    @app.exception_handler(LoginRequired)
    async def redirect_to_login(request: Request, exc: LoginRequired) -> RedirectResponse:
        logger.info(f"Unauthenticated request to {request.url.path}, redirecting to {exc.location}")
        return RedirectResponse(url=exc.location, status_code=303)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="healthy")

    @app.get("/menu/{restaurant_id}", response_model=PublicMenu, tags=["Public Menu"])
    async def public_menu(restaurant_id: str) -> PublicMenu | JSONResponse:
        """Public menu for a restaurant. No session required."""
        menu = await PublicMenuService(app.state.backend).render(restaurant_id)
        if menu.status is PublicMenuStatus.ERROR:
            return JSONResponse(status_code=502, content=menu.model_dump(mode="json"))
        return menu

    @app.get(LOGIN_PATH, response_model=LoginViewResponse, tags=["Auth"])
    async def login_view() -> LoginViewResponse:
        """Login view that unauthenticated admin requests are redirected to."""
        return LoginViewResponse(submit_path="/admin/login", message="Sign in to manage the menu")

    @app.post("/admin/login", tags=["Auth"])
    async def login(credentials: LoginRequest) -> RedirectResponse:
        """Sign in and redirect to the dashboard with the session cookie set.

        Raises:
            HTTPException: 401 with the backend's message if sign-in fails
        """
        redirects: list[str] = []
        form = LoginForm(auth=app.state.backend.auth, navigate=redirects.append)
        session = await form.submit(credentials.email, credentials.password)
        if session is None:
            raise HTTPException(status_code=401, detail=form.error)

        response = RedirectResponse(url=redirects[-1], status_code=303)
        response.set_cookie(
            ACCESS_TOKEN_COOKIE,
            session.access_token,
            max_age=session.expires_in,
            httponly=True,
            secure=secure_cookies,
            samesite="lax",
        )
        return response

    @app.post("/admin/logout", tags=["Auth"])
    async def logout(session: Gated) -> RedirectResponse:
        """Sign out, clear the session cookie and redirect to the login view."""
        try:
            await app.state.backend.auth.sign_out(session)
        except AuthError as e:
            raise HTTPException(status_code=502, detail=e.message) from e

        response = RedirectResponse(url=LOGIN_PATH, status_code=303)
        response.delete_cookie(ACCESS_TOKEN_COOKIE)
        return response

    @app.get("/admin/dashboard", response_model=DashboardResponse, tags=["Dashboard"])
    async def dashboard(session: Gated) -> DashboardResponse:
        """Categories and menu items for the dashboard."""
        client = app.state.backend.with_session(session)
        category_manager = CategoryManager(client, confirm=confirmed_by(False))
        item_manager = MenuItemManager(client, confirm=confirmed_by(False))

        if not await category_manager.list_categories():
            raise_for_manager(category_manager)
        if not await item_manager.load():
            raise_for_manager(item_manager)

        return DashboardResponse(
            user_email=session.user.email if session.user else None,
            categories=category_manager.categories,
            menu_items=item_manager.menu_items,
            category_options=item_manager.categories,
            draft=item_manager.draft,
        )

    @app.get("/admin/categories", response_model=CategoryListResponse, tags=["Categories"])
    async def list_categories(session: Gated) -> CategoryListResponse:
        """Categories by display order."""
        manager = CategoryManager(app.state.backend.with_session(session), confirm=confirmed_by(False))
        if not await manager.list_categories():
            raise_for_manager(manager)
        return CategoryListResponse(categories=manager.categories)

    @app.post(
        "/admin/categories",
        response_model=CategoryListResponse,
        status_code=201,
        tags=["Categories"],
    )
    async def add_category(payload: CategoryCreateRequest, session: Gated) -> CategoryListResponse:
        """Add a category and return the refreshed list."""
        manager = CategoryManager(app.state.backend.with_session(session), confirm=confirmed_by(False))
        if not await manager.add_category(payload.name):
            raise_for_manager(manager)
        return CategoryListResponse(categories=manager.categories)

    @app.delete(
        "/admin/categories/{category_id}",
        response_model=CategoryListResponse,
        tags=["Categories"],
    )
    async def delete_category(
        category_id: str,
        session: Gated,
        confirm: Annotated[bool, Query()] = False,
    ) -> CategoryListResponse:
        """Delete a category. Requires `confirm=true`."""
        if not confirm:
            raise HTTPException(status_code=400, detail="Deletion must be confirmed")
        manager = CategoryManager(app.state.backend.with_session(session), confirm=confirmed_by(confirm))
        if not await manager.delete_category(category_id):
            raise_for_manager(manager)
        return CategoryListResponse(categories=manager.categories)

    @app.get("/admin/menu-items", response_model=MenuItemListResponse, tags=["Menu Items"])
    async def list_menu_items(session: Gated) -> MenuItemListResponse:
        """Menu items with the item form's category options."""
        manager = MenuItemManager(app.state.backend.with_session(session), confirm=confirmed_by(False))
        if not await manager.load():
            raise_for_manager(manager)
        return MenuItemListResponse(
            categories=manager.categories, menu_items=manager.menu_items, draft=manager.draft
        )

    @app.post(
        "/admin/menu-items",
        response_model=MenuItemListResponse,
        status_code=201,
        tags=["Menu Items"],
    )
    async def add_menu_item(draft: MenuItemDraft, session: Gated) -> MenuItemListResponse:
        """Add a menu item and return the refreshed list."""
        manager = MenuItemManager(app.state.backend.with_session(session), confirm=confirmed_by(False))
        if not await manager.add_item(draft):
            raise_for_manager(manager)
        return MenuItemListResponse(
            categories=manager.categories, menu_items=manager.menu_items, draft=manager.draft
        )

    @app.delete(
        "/admin/menu-items/{item_id}",
        response_model=MenuItemListResponse,
        tags=["Menu Items"],
    )
    async def delete_menu_item(
        item_id: str,
        session: Gated,
        confirm: Annotated[bool, Query()] = False,
    ) -> MenuItemListResponse:
        """Delete a menu item. Requires `confirm=true`."""
        if not confirm:
            raise HTTPException(status_code=400, detail="Deletion must be confirmed")
        manager = MenuItemManager(app.state.backend.with_session(session), confirm=confirmed_by(confirm))
        if not await manager.delete_item(item_id):
            raise_for_manager(manager)
        return MenuItemListResponse(
            categories=manager.categories, menu_items=manager.menu_items, draft=manager.draft
        )

    @app.post(
        "/admin/menu-items/{item_id}/toggle-availability",
        response_model=MenuItemListResponse,
        tags=["Menu Items"],
    )
    async def toggle_availability(item_id: str, session: Gated) -> MenuItemListResponse:
        """Flip a menu item's availability.

        Raises:
            HTTPException: 404 if no such item is listed
        """
        manager = MenuItemManager(app.state.backend.with_session(session), confirm=confirmed_by(False))
        if not await manager.load():
            raise_for_manager(manager)

        item = manager.find_item(item_id)
        if item is None:
            raise HTTPException(status_code=404, detail=f"Menu item {item_id} not found")

        if not await manager.toggle_availability(item):
            raise_for_manager(manager)
        return MenuItemListResponse(
            categories=manager.categories, menu_items=manager.menu_items, draft=manager.draft
        )

    return app
