from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from quickbite.core.errors import FieldError, MenuValidationError

CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")
REQUEST_LOCATIONS = {"body", "query", "path"}

NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500
CATEGORY_MAX_LENGTH = 50
DIETARY_TAG_MAX_LENGTH = 100
PRICE_QUANTUM = Decimal("0.01")
MAX_PRICE = Decimal(10) ** 16

Price = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


def _sanitize_text(value: str, max_length: int) -> str:
    cleaned = CONTROL_CHARS_RE.sub("", value.strip())
    if not cleaned:
        raise ValueError("Value must not be empty")
    if len(cleaned) > max_length:
        raise ValueError(f"Value cannot exceed {max_length} characters")
    return cleaned


def _check_optional_text(value: str | None, max_length: int) -> str | None:
    # Free text is stored as sent; only blank collapses to None
    if value is None or not value.strip():
        return None
    if len(value) > max_length:
        raise ValueError(f"Value cannot exceed {max_length} characters")
    return value


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MenuItemPayload(_CamelModel):
    """Body of create and update requests."""

    id: int | None = None
    name: str
    description: str | None = None
    price: Price = Field(..., gt=0)
    category: str
    dietary_tag: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _sanitize_text(value, NAME_MAX_LENGTH)

    @field_validator("category")
    @classmethod
    def validate_category(cls, value: str) -> str:
        return _sanitize_text(value, CATEGORY_MAX_LENGTH)

    @field_validator("price")
    @classmethod
    def validate_price(cls, value: Decimal) -> Decimal:
        # Stored as NUMERIC(18, 2); the first check keeps quantize in range
        if value >= MAX_PRICE:
            raise ValueError("Price is too large")
        quantized = value.quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)
        if quantized >= MAX_PRICE:
            raise ValueError("Price is too large")
        if quantized <= 0:
            raise ValueError("Price must be greater than 0")
        return quantized

    @field_validator("description")
    @classmethod
    def validate_description(cls, value: str | None) -> str | None:
        return _check_optional_text(value, DESCRIPTION_MAX_LENGTH)

    @field_validator("dietary_tag")
    @classmethod
    def validate_dietary_tag(cls, value: str | None) -> str | None:
        return _check_optional_text(value, DIETARY_TAG_MAX_LENGTH)

    def column_values(self) -> dict[str, Any]:
        """Every persisted field except the id."""
        return self.model_dump(exclude={"id"})


class MenuItem(_CamelModel):
    id: int
    name: str
    description: str | None = None
    price: Price
    category: str
    dietary_tag: str | None = None


class HealthStatus(BaseModel):
    status: str
    timestamp: str
    service: str
    version: str
    environment: str


def field_errors(raw_errors: Sequence[Mapping[str, Any]]) -> list[FieldError]:
    errors = []
    for error in raw_errors:
        loc = [str(part) for part in error["loc"] if part not in REQUEST_LOCATIONS]
        errors.append(FieldError(".".join(loc) or "body", error["msg"]))
    return errors


def parse_payload(raw: Any) -> MenuItemPayload:
    try:
        return MenuItemPayload.model_validate(raw)
    except ValidationError as exc:
        raise MenuValidationError(field_errors(exc.errors())) from exc


def parse_update_payload(item_id: int, raw: Any) -> MenuItemPayload:
    """Validate an update body; the body id must match the path id."""
    body_id = raw.get("id") if isinstance(raw, dict) else None
    if isinstance(body_id, bool) or not isinstance(body_id, int) or body_id != item_id:
        raise MenuValidationError.single("id", "Body id must match the id in the path")
    return parse_payload(raw)


def require_term(field: str, value: str) -> str:
    cleaned = CONTROL_CHARS_RE.sub("", value.strip())
    if not cleaned:
        raise MenuValidationError.single(field, "Value must not be empty")
    return cleaned


def check_price_range(min_price: Decimal, max_price: Decimal) -> None:
    errors = []
    if min_price < 0:
        errors.append(FieldError("minPrice", "Price values cannot be negative"))
    if max_price < 0:
        errors.append(FieldError("maxPrice", "Price values cannot be negative"))
    if not errors and min_price > max_price:
        errors.append(FieldError("minPrice", "Minimum price cannot be greater than maximum price"))
    if errors:
        raise MenuValidationError(errors)
