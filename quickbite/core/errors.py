from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class MenuError(RuntimeError):
    """Base class for menu item outcomes that are not a plain success."""


class MenuValidationError(MenuError):
    def __init__(self, errors: list[FieldError]) -> None:
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in errors))
        self.errors = errors

    @classmethod
    def single(cls, field: str, message: str) -> MenuValidationError:
        return cls([FieldError(field, message)])


class MenuItemNotFound(MenuError):
    def __init__(self, item_id: int) -> None:
        super().__init__(f"Menu item {item_id} not found")
        self.item_id = item_id


class ConcurrencyConflict(MenuError):
    def __init__(self, item_id: int) -> None:
        super().__init__(f"Menu item {item_id} was modified or removed concurrently")
        self.item_id = item_id
