from __future__ import annotations

import json
import sys
from pathlib import Path

from quickbite.core.config import Settings
from quickbite.core.logging import configure_logging
from quickbite.db.bootstrap import init_store, seed_store
from quickbite.menu.schemas import MenuItemPayload
from quickbite.menu.store import MenuItemStore


def _load_menu(path: Path) -> list[MenuItemPayload]:
    data = json.loads(path.read_text(encoding="utf-8"))
    return [MenuItemPayload.model_validate(item) for item in data]


def load_menu_file(store: MenuItemStore, menu_path: Path) -> int:
    items = _load_menu(menu_path)
    store.create_many(items)
    return len(items)


def seed_menu(settings: Settings, menu_path: Path | None = None) -> int:
    store = init_store(settings.model_copy(update={"db_seed": False}))
    try:
        if menu_path is None:
            return seed_store(store)
        return load_menu_file(store, menu_path)
    finally:
        store.close()


if __name__ == "__main__":
    settings = Settings()
    configure_logging(settings.log_level)
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    print(seed_menu(settings, path))
