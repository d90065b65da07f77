"""Category management for the admin dashboard."""

import logging
from collections.abc import Callable
from enum import Enum

from restaurant_menu_admin.models.menu_models import Category
from restaurant_menu_admin.observability.decorators import traced
from restaurant_menu_admin.observability.metrics import (
    record_menu_mutation,
    record_validation_rejection,
)
from restaurant_menu_admin.services.backend_client import BackendClient
from restaurant_menu_admin.services.errors import BackendError

logger = logging.getLogger(__name__)

CATEGORIES_TABLE = "categories"

Confirm = Callable[[str], bool]


class ErrorKind(str, Enum):
    """Where a manager's current error came from."""

    VALIDATION = "validation"
    BACKEND = "backend"


class CategoryManager:
    """View state and operations for the category list.

    Every successful write is followed by a full re-list so the displayed
    categories always match the backend. Operations report expected failures
    by returning False and leaving a message in `error`; they never raise
    for backend errors.

    Attributes:
        categories: Categories as last listed, by display_order ascending
        new_category_name: Current contents of the "new category" input
        busy: True while an operation is in flight; submissions are refused meanwhile
        error: Message for the last failed operation, None if it succeeded
        error_kind: Whether `error` came from local validation or the backend
    """

    def __init__(self, client: BackendClient, confirm: Confirm) -> None:
        """Initialize the manager.

        Args:
            client: Backend client bound to the admin's session
            confirm: Asks the admin a yes/no question, returns True to proceed
        """
        self.client = client
        self.confirm = confirm
        self.categories: list[Category] = []
        self.new_category_name = ""
        self.busy = False
        self.error: str | None = None
        self.error_kind: ErrorKind | None = None

    def _fail(self, message: str, kind: ErrorKind) -> bool:
        self.error = message
        self.error_kind = kind
        return False

    def _begin(self) -> bool:
        if self.busy:
            logger.debug("Category operation refused, another one is in flight")
            return False
        self.busy = True
        self.error = None
        self.error_kind = None
        return True

    async def _fetch(self) -> bool:
        try:
            response = await (
                self.client.table(CATEGORIES_TABLE)
                .select("*")
                .order("display_order", ascending=True)
                .execute()
            )
            categories = response.models(Category)
        except BackendError as e:
            return self._fail(e.message, ErrorKind.BACKEND)

        self.categories = categories
        return True

    @traced("category_manager.list_categories")
    async def list_categories(self) -> bool:
        """Fetch all categories ordered by display_order.

        On failure the previously listed categories stay in place.
        """
        if not self._begin():
            return False
        try:
            return await self._fetch()
        finally:
            self.busy = False

    @traced("category_manager.add_category")
    async def add_category(self, name: str | None = None) -> bool:
        """Insert a category named `name` (or the current input) and re-list.

        Blank names are rejected without contacting the backend.
        """
        if self.busy:
            return False
        if name is not None:
            self.new_category_name = name
        if not self.new_category_name.strip():
            record_validation_rejection("category", "empty_name")
            return self._fail("Category name is required.", ErrorKind.VALIDATION)

        if not self._begin():
            return False
        try:
            try:
                await (
                    self.client.table(CATEGORIES_TABLE)
                    .insert({"name": self.new_category_name.strip()})
                    .execute()
                )
            except BackendError as e:
                record_menu_mutation("category", "insert", success=False)
                return self._fail(e.message, ErrorKind.BACKEND)

            record_menu_mutation("category", "insert", success=True)
            logger.info(f"Category added: {self.new_category_name}")
            self.new_category_name = ""
            return await self._fetch()
        finally:
            self.busy = False

    @traced("category_manager.delete_category")
    async def delete_category(self, category_id: str) -> bool:
        """Delete a category after the admin confirms, then re-list.

        What happens to the category's menu items is up to the backend's
        foreign key rules; a refusal surfaces as an error message.
        """
        if self.busy:
            return False
        if not self.confirm("Are you sure you want to delete this category?"):
            return False

        if not self._begin():
            return False
        try:
            try:
                await self.client.table(CATEGORIES_TABLE).delete().eq("id", category_id).execute()
            except BackendError as e:
                record_menu_mutation("category", "delete", success=False)
                return self._fail(e.message, ErrorKind.BACKEND)

            record_menu_mutation("category", "delete", success=True)
            logger.info(f"Category deleted: {category_id}")
            return await self._fetch()
        finally:
            self.busy = False
