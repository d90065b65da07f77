"""Read-only public menu for guests."""

import logging
from decimal import ROUND_HALF_UP, Decimal
from restaurant_menu_admin.models.menu_models import (
    DisplayMenuCategory,
    DisplayMenuItem,
    PublicMenu,
    PublicMenuStatus,
    RawMenuCategory,
)
from restaurant_menu_admin.observability.decorators import traced
from restaurant_menu_admin.observability.metrics import record_public_menu_render
from restaurant_menu_admin.services.backend_client import BackendClient
from restaurant_menu_admin.services.category_manager import CATEGORIES_TABLE
from restaurant_menu_admin.services.errors import BackendError

logger = logging.getLogger(__name__)

PUBLIC_MENU_COLUMNS = """
    id,
    name,
    menu_items (
        id,
        name,
        description,
        price,
        is_available
    )
"""

EMPTY_MENU_MESSAGE = "There are no items available on our menu right now."
ERROR_MENU_MESSAGE = "The menu could not be loaded. Please check the QR code or contact support."

CURRENCY_SUFFIX = "TL"


def format_price(price: Decimal) -> str:
    """Format a price with two decimals, e.g. Decimal("12.5") -> "12.50 TL"."""
    amount = price.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{amount} {CURRENCY_SUFFIX}"


def build_display_menu(rows: list[RawMenuCategory]) -> list[DisplayMenuCategory]:
    """Turn joined category rows into the guest-facing menu.

    Unavailable items are dropped, then categories left without items. The
    backend's ordering of categories and items is kept.
    """
    display: list[DisplayMenuCategory] = []
    for raw in rows:
        items = [
            DisplayMenuItem(
                id=item.id,
                name=item.name,
                description=item.description,
                price=item.price,
                price_label=format_price(item.price),
            )
            for item in raw.menu_items
            if item.is_available
        ]
        if items:
            display.append(DisplayMenuCategory(id=raw.id, name=raw.name, items=items))
    return display


class PublicMenuService:
    """Renders the public menu. Needs no session and performs no writes."""

    def __init__(self, client: BackendClient) -> None:
        """Initialize the service.

        Args:
            client: Anonymous backend client
        """
        self.client = client

    @traced("public_menu.render")
    async def render(self, restaurant_id: str) -> PublicMenu:
        """Fetch and shape the menu for `restaurant_id`.

        The restaurant identifier is echoed back but not used to filter the
        query; any per-restaurant scoping is left to the backend's row
        policies.

        Returns:
            The rendered menu; fetch failures come back as an error-state menu
        """
        try:
            response = await (
                self.client.table(CATEGORIES_TABLE)
                .select(PUBLIC_MENU_COLUMNS)
                .order("display_order", ascending=True)
                .order("name", ascending=True, foreign_table="menu_items")
                .execute()
            )
            rows = response.models(RawMenuCategory)
        except BackendError as e:
            logger.error(f"Failed to load menu for restaurant {restaurant_id}: {e.message}")
            record_public_menu_render(PublicMenuStatus.ERROR.value)
            return PublicMenu(
                restaurant_id=restaurant_id,
                status=PublicMenuStatus.ERROR,
                message=ERROR_MENU_MESSAGE,
            )

        categories = build_display_menu(rows)
        if not categories:
            record_public_menu_render(PublicMenuStatus.EMPTY.value)
            return PublicMenu(
                restaurant_id=restaurant_id,
                status=PublicMenuStatus.EMPTY,
                message=EMPTY_MENU_MESSAGE,
            )

        record_public_menu_render(PublicMenuStatus.OK.value)
        return PublicMenu(
            restaurant_id=restaurant_id,
            status=PublicMenuStatus.OK,
            categories=categories,
        )
