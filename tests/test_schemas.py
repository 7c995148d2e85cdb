"""
Tests for menu payload validation.

Verifies that:
- Text fields are trimmed and stripped of control characters
- Length limits and the positive-price rule are enforced
- Field errors use the camelCase JSON names
- Update bodies must carry the id from the path
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from quickbite.core.errors import MenuValidationError
from quickbite.menu.schemas import (
    MenuItem,
    MenuItemPayload,
    check_price_range,
    parse_payload,
    parse_update_payload,
    require_term,
)


class TestMenuItemPayload:
    def test_accepts_camel_case_and_snake_case(self) -> None:
        camel = MenuItemPayload.model_validate(
            {"name": "Soup", "price": 3, "category": "Starters", "dietaryTag": "Vegan"}
        )
        snake = MenuItemPayload(name="Soup", price=3, category="Starters", dietary_tag="Vegan")
        assert camel == snake

    def test_text_is_trimmed_and_control_chars_removed(self) -> None:
        payload = MenuItemPayload(name="  Soup\x00 ", price=3, category="\tStarters ")
        assert payload.name == "Soup"
        assert payload.category == "Starters"

    def test_blank_optional_text_becomes_none(self) -> None:
        payload = MenuItemPayload(
            name="Soup", price=3, category="Starters", description="   ", dietary_tag=""
        )
        assert payload.description is None
        assert payload.dietary_tag is None

    def test_free_text_is_kept_verbatim(self) -> None:
        payload = MenuItemPayload(
            name="Soup",
            price=3,
            category="Starters",
            description=" Line one\nLine two\tserved hot ",
            dietary_tag="Vegan\tGluten-Free",
        )
        assert payload.description == " Line one\nLine two\tserved hot "
        assert payload.dietary_tag == "Vegan\tGluten-Free"

    def test_price_is_kept_as_decimal(self) -> None:
        payload = MenuItemPayload(name="Soup", price="4.50", category="Starters")
        assert payload.price == Decimal("4.50")

    def test_column_values_exclude_id(self) -> None:
        payload = MenuItemPayload(id=3, name="Soup", price=3, category="Starters")
        assert "id" not in payload.column_values()
        assert payload.column_values()["dietary_tag"] is None


class TestParsePayload:
    def test_reports_all_violations(self) -> None:
        with pytest.raises(MenuValidationError) as excinfo:
            parse_payload({"name": "", "price": -1, "category": "x" * 51, "dietaryTag": "y" * 101})

        fields = [error.field for error in excinfo.value.errors]
        assert sorted(fields) == ["category", "dietaryTag", "name", "price"]

    @pytest.mark.parametrize("price", ["NaN", "Infinity", "free", None])
    def test_rejects_non_numeric_price(self, price) -> None:
        with pytest.raises(MenuValidationError):
            parse_payload({"name": "Soup", "price": price, "category": "Starters"})

    def test_error_messages_mention_limits(self) -> None:
        with pytest.raises(MenuValidationError) as excinfo:
            parse_payload({"name": "x" * 101, "price": 1, "category": "Starters"})
        assert "100 characters" in excinfo.value.errors[0].message


class TestParseUpdatePayload:
    def test_matching_id_is_accepted(self) -> None:
        payload = parse_update_payload(4, {"id": 4, "name": "Soup", "price": 1, "category": "A"})
        assert payload.id == 4

    @pytest.mark.parametrize("body_id", [None, 5, "4", True, 4.0])
    def test_mismatched_id_is_rejected_before_field_validation(self, body_id) -> None:
        body = {"name": "", "price": -3, "category": ""}
        if body_id is not None:
            body["id"] = body_id

        with pytest.raises(MenuValidationError) as excinfo:
            parse_update_payload(4, body)

        assert [error.field for error in excinfo.value.errors] == ["id"]

    def test_non_object_body_is_rejected(self) -> None:
        with pytest.raises(MenuValidationError):
            parse_update_payload(1, ["not", "an", "object"])


class TestTermsAndRanges:
    def test_require_term_strips(self) -> None:
        assert require_term("name", "  pizza ") == "pizza"

    def test_price_range_negative_bounds_report_each_field(self) -> None:
        with pytest.raises(MenuValidationError) as excinfo:
            check_price_range(Decimal("-1"), Decimal("-2"))
        assert [e.field for e in excinfo.value.errors] == ["minPrice", "maxPrice"]

    def test_price_range_zero_is_allowed(self) -> None:
        check_price_range(Decimal("0"), Decimal("0"))


def test_menu_item_serializes_camel_case_with_numeric_price() -> None:
    item = MenuItem(id=1, name="Soup", price=Decimal("4.50"), category="Starters", dietary_tag="Vegan")

    assert item.model_dump(mode="json", by_alias=True) == {
        "id": 1,
        "name": "Soup",
        "description": None,
        "price": 4.5,
        "category": "Starters",
        "dietaryTag": "Vegan",
    }


@pytest.mark.parametrize(
    ("price", "expected"),
    [("12.999", Decimal("13.00")), ("0.005", Decimal("0.01")), (7, Decimal("7.00"))],
)
def test_price_is_rounded_to_cents(price, expected) -> None:
    assert MenuItemPayload(name="Soup", price=price, category="Starters").price == expected


@pytest.mark.parametrize("price", ["0.004", "1e30", "9999999999999999.995"])
def test_price_outside_storable_range_is_rejected(price) -> None:
    with pytest.raises(MenuValidationError):
        parse_payload({"name": "Soup", "price": price, "category": "Starters"})
