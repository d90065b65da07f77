"""Menu data models.

These models mirror the rows of the hosted backend's `categories` and
`menu_items` collections, plus the display shapes used by the public menu.
"""

from decimal import Decimal
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field, field_serializer, model_validator


def _opaque_id(value: Any) -> Any:
    # Backends hand out int8 or uuid keys; both are carried as strings
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


RowId = Annotated[str, BeforeValidator(_opaque_id)]


class Category(BaseModel):
    """Menu category model."""

    id: RowId = Field(..., description="Unique identifier for the category")
    name: str = Field(..., min_length=1, description="Category name")
    display_order: int | None = Field(default=0, description="Display order of category, lower first")


class CategoryOption(BaseModel):
    """Category projection used by the item form's category selection."""

    id: RowId
    name: str


class MenuItem(BaseModel):
    """Menu item model, joined with the name of its category."""

    id: RowId = Field(..., description="Unique identifier for the menu item")
    category_id: RowId = Field(..., description="Category this item belongs to")
    name: str = Field(..., min_length=1, description="Item name")
    description: str | None = Field(None, description="Item description")
    price: Decimal = Field(..., description="Item price", ge=0)
    is_available: bool = Field(default=True, description="Whether item is shown on the public menu")
    category_name: str | None = Field(None, description="Name of the joined category")

    @field_serializer("price", when_used="json")
    def serialize_price(self, price: Decimal) -> str:
        return str(price)

    @model_validator(mode="before")
    @classmethod
    def flatten_joined_category(cls, data: Any) -> Any:
        """Lift the embedded `categories(name)` join into `category_name`."""
        if isinstance(data, dict) and "categories" in data:
            data = dict(data)
            joined = data.pop("categories")
            if isinstance(joined, dict) and "category_name" not in data:
                data["category_name"] = joined.get("name")
        return data


class MenuItemDraft(BaseModel):
    """Unsaved menu item as entered in the admin form.

    Price is kept as entered so that validation can reject it without
    raising; it is coerced to a number only when the draft is inserted.
    """

    name: str = ""
    description: str | None = ""
    price: Decimal | float | int | str = 0
    category_id: RowId | None = None
    is_available: bool = True


class PublicMenuItem(BaseModel):
    """Item row as embedded under a category in the public menu query."""

    id: RowId
    name: str
    description: str | None = None
    price: Decimal
    is_available: bool = True


class RawMenuCategory(BaseModel):
    """Category row with its embedded items, as returned by the backend."""

    id: RowId
    name: str
    menu_items: list[PublicMenuItem] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def default_missing_items(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("menu_items") is None:
            data = {**data, "menu_items": []}
        return data


class DisplayMenuItem(BaseModel):
    """Available item as shown to guests."""

    id: RowId
    name: str
    description: str | None = None
    price: Decimal
    price_label: str

    @field_serializer("price", when_used="json")
    def serialize_price(self, price: Decimal) -> str:
        return str(price)


class DisplayMenuCategory(BaseModel):
    """Category as shown to guests, holding only available items."""

    id: RowId
    name: str
    items: list[DisplayMenuItem]


class PublicMenuStatus(str, Enum):
    """Outcome of rendering the public menu."""

    OK = "ok"
    EMPTY = "empty"
    ERROR = "error"


class PublicMenu(BaseModel):
    """Rendered public menu for one restaurant."""

    restaurant_id: str
    status: PublicMenuStatus
    categories: list[DisplayMenuCategory] = Field(default_factory=list)
    message: str | None = None
