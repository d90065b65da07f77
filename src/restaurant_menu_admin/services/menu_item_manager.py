"""Menu item management for the admin dashboard."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from restaurant_menu_admin.models.menu_models import CategoryOption, MenuItem, MenuItemDraft
from restaurant_menu_admin.observability.decorators import traced
from restaurant_menu_admin.observability.metrics import (
    record_menu_mutation,
    record_validation_rejection,
)
from restaurant_menu_admin.services.backend_client import BackendClient
from restaurant_menu_admin.services.category_manager import CATEGORIES_TABLE, Confirm, ErrorKind
from restaurant_menu_admin.services.errors import BackendError

logger = logging.getLogger(__name__)

MENU_ITEMS_TABLE = "menu_items"

ITEM_COLUMNS = """
    id,
    name,
    description,
    price,
    is_available,
    category_id,
    categories (name)
"""

INVALID_DRAFT_MESSAGE = "Please fill in all fields correctly."


def parse_price(value: Any) -> Decimal | None:
    """Coerce a submitted price to a Decimal, None if it is not a finite number."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return price if price.is_finite() else None


class MenuItemManager:
    """View state and operations for menu items.

    Holds the category options for the item form alongside the items, and
    the draft of the item being added. Every successful write is followed by
    a full reload.

    Attributes:
        categories: Category options by display_order ascending
        menu_items: Items by name ascending, joined with their category name
        draft: The "new item" form contents
        busy: True while an operation is in flight
        error: Message for the last failed operation
        error_kind: Whether `error` came from local validation or the backend
    """

    def __init__(self, client: BackendClient, confirm: Confirm) -> None:
        self.client = client
        self.confirm = confirm
        self.categories: list[CategoryOption] = []
        self.menu_items: list[MenuItem] = []
        self.draft = MenuItemDraft()
        self.busy = False
        self.error: str | None = None
        self.error_kind: ErrorKind | None = None

    def _fail(self, message: str, kind: ErrorKind) -> bool:
        self.error = message
        self.error_kind = kind
        return False

    def _begin(self) -> bool:
        if self.busy:
            logger.debug("Menu item operation refused, another one is in flight")
            return False
        self.busy = True
        self.error = None
        self.error_kind = None
        return True

    def _blank_draft(self) -> MenuItemDraft:
        return MenuItemDraft(category_id=self.categories[0].id if self.categories else None)

    async def _fetch(self) -> bool:
        # Categories first: without them the form has nothing to offer
        try:
            category_response = await (
                self.client.table(CATEGORIES_TABLE)
                .select("id, name")
                .order("display_order", ascending=True)
                .execute()
            )
            self.categories = category_response.models(CategoryOption)
        except BackendError as e:
            return self._fail(e.message, ErrorKind.BACKEND)

        if self.categories and not self.draft.category_id:
            self.draft.category_id = self.categories[0].id

        try:
            item_response = await (
                self.client.table(MENU_ITEMS_TABLE)
                .select(ITEM_COLUMNS)
                .order("name", ascending=True)
                .execute()
            )
            self.menu_items = item_response.models(MenuItem)
        except BackendError as e:
            return self._fail(e.message, ErrorKind.BACKEND)

        return True

    @traced("menu_item_manager.load")
    async def load(self) -> bool:
        """Fetch category options, then items."""
        if not self._begin():
            return False
        try:
            return await self._fetch()
        finally:
            self.busy = False

    def validate_draft(self, draft: MenuItemDraft) -> Decimal | None:
        """Check a draft locally.

        Returns:
            The parsed price if the draft can be inserted, None otherwise
        """
        price = parse_price(draft.price)
        if not draft.name.strip():
            record_validation_rejection("menu_item", "empty_name")
            return None
        if not draft.category_id:
            record_validation_rejection("menu_item", "missing_category")
            return None
        if price is None or price <= 0:
            record_validation_rejection("menu_item", "non_positive_price")
            return None
        return price

    @traced("menu_item_manager.add_item")
    async def add_item(self, draft: MenuItemDraft | None = None) -> bool:
        """Insert `draft` (or the current draft) and reload.

        Invalid drafts are rejected without contacting the backend.
        """
        if self.busy:
            return False
        if draft is not None:
            self.draft = draft

        price = self.validate_draft(self.draft)
        if price is None:
            return self._fail(INVALID_DRAFT_MESSAGE, ErrorKind.VALIDATION)

        if not self._begin():
            return False
        try:
            row = {
                "name": self.draft.name,
                "description": self.draft.description or None,
                "price": float(price),
                "category_id": self.draft.category_id,
                "is_available": self.draft.is_available,
            }
            try:
                await self.client.table(MENU_ITEMS_TABLE).insert(row).execute()
            except BackendError as e:
                record_menu_mutation("menu_item", "insert", success=False)
                return self._fail(e.message, ErrorKind.BACKEND)

            record_menu_mutation("menu_item", "insert", success=True)
            logger.info(f"Menu item added: {self.draft.name}")
            self.draft = self._blank_draft()
            return await self._fetch()
        finally:
            self.busy = False

    @traced("menu_item_manager.delete_item")
    async def delete_item(self, item_id: str) -> bool:
        """Delete an item after the admin confirms, then reload."""
        if self.busy:
            return False
        if not self.confirm("Are you sure you want to delete this menu item?"):
            return False

        if not self._begin():
            return False
        try:
            try:
                await self.client.table(MENU_ITEMS_TABLE).delete().eq("id", item_id).execute()
            except BackendError as e:
                record_menu_mutation("menu_item", "delete", success=False)
                return self._fail(e.message, ErrorKind.BACKEND)

            record_menu_mutation("menu_item", "delete", success=True)
            logger.info(f"Menu item deleted: {item_id}")
            return await self._fetch()
        finally:
            self.busy = False

    @traced("menu_item_manager.toggle_availability")
    async def toggle_availability(self, item: MenuItem) -> bool:
        """Flip an item's availability, then reload."""
        if not self._begin():
            return False
        try:
            try:
                await (
                    self.client.table(MENU_ITEMS_TABLE)
                    .update({"is_available": not item.is_available})
                    .eq("id", item.id)
                    .execute()
                )
            except BackendError as e:
                record_menu_mutation("menu_item", "toggle", success=False)
                return self._fail(e.message, ErrorKind.BACKEND)

            record_menu_mutation("menu_item", "toggle", success=True)
            return await self._fetch()
        finally:
            self.busy = False

    def find_item(self, item_id: str) -> MenuItem | None:
        """Return the loaded item with `item_id`, if any."""
        return next((item for item in self.menu_items if item.id == item_id), None)
