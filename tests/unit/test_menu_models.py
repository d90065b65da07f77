"""Unit tests for menu data models."""

import warnings
from decimal import Decimal

import pytest
from pydantic import ValidationError

from restaurant_menu_admin.models.menu_models import DisplayMenuItem, MenuItem, MenuItemDraft


@pytest.mark.unit
class TestMenuItem:
    """Test suite for the menu item row model."""

    def test_price_is_a_string_in_json_and_decimal_in_python(self) -> None:
        """Test that prices keep their exact digits when serialized."""
        with warnings.catch_warnings():
            warnings.simplefilter("error", DeprecationWarning)
            item = MenuItem(id="item_1", category_id="cat_1", name="Lentil Soup", price=Decimal("6.50"))

            assert item.model_dump(mode="json")["price"] == "6.50"
            assert item.model_dump()["price"] == Decimal("6.50")

    def test_integer_keys_are_coerced_to_strings(self) -> None:
        item = MenuItem.model_validate(
            {"id": 10, "category_id": 1, "name": "Lentil Soup", "price": 6.5, "categories": {"name": "Soups"}}
        )

        assert item.id == "10"
        assert item.category_id == "1"
        assert item.category_name == "Soups"

    def test_boolean_key_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            MenuItem.model_validate({"id": True, "category_id": "cat_1", "name": "Soup", "price": 1})

    def test_negative_price_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            MenuItem(id="item_1", category_id="cat_1", name="Soup", price=Decimal("-1"))


@pytest.mark.unit
class TestDisplayModels:
    """Test suite for the guest-facing and form models."""

    def test_display_item_price_serializes_as_string(self) -> None:
        item = DisplayMenuItem(id=3, name="Baklava", price=Decimal("12.5"), price_label="12.50 TL")

        assert item.model_dump(mode="json") == {
            "id": "3",
            "name": "Baklava",
            "description": None,
            "price": "12.5",
            "price_label": "12.50 TL",
        }

    def test_draft_accepts_integer_category(self) -> None:
        assert MenuItemDraft(category_id=4).category_id == "4"
