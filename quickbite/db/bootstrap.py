"""Store initialization, run once at process start."""
from __future__ import annotations

from decimal import Decimal

import structlog

from quickbite.core.config import Settings
from quickbite.core.retry import retryable
from quickbite.db.engine import create_store_engine
from quickbite.menu.schemas import MenuItemPayload
from quickbite.menu.store import MenuItemStore

logger = structlog.get_logger(__name__)

SEED_ITEMS: tuple[MenuItemPayload, ...] = (
    MenuItemPayload(
        name="Margherita Pizza",
        description="Classic pizza with tomato sauce, mozzarella, and fresh basil",
        price=Decimal("12.99"),
        category="Pizza",
        dietary_tag="Vegetarian",
    ),
    MenuItemPayload(
        name="Chicken Burger",
        description="Juicy grilled chicken breast with lettuce, tomato, and mayo",
        price=Decimal("9.99"),
        category="Burger",
        dietary_tag="Non-Vegetarian",
    ),
    MenuItemPayload(
        name="Caesar Salad",
        description="Fresh romaine lettuce with parmesan cheese and caesar dressing",
        price=Decimal("8.99"),
        category="Salad",
        dietary_tag="Vegetarian",
    ),
)


def seed_store(store: MenuItemStore) -> int:
    """Insert the default menu into an empty store. Returns the rows added."""
    created = store.seed_if_empty(list(SEED_ITEMS))
    if created:
        logger.info("menu_seeded", items=len(created))
    return len(created)


def init_store(settings: Settings) -> MenuItemStore:
    """Build the store for ``settings``.

    Waits for the database to accept connections, creates the schema when
    ``db_auto_create`` is set and seeds the default menu. The testing
    environment gets an empty in-memory store and is never seeded.
    """
    store = MenuItemStore(create_store_engine(settings))

    retryable("menu_store", settings)(store.ping)()

    if settings.db_auto_create or settings.is_testing:
        store.ensure_schema()
    if settings.db_seed and not settings.is_testing:
        seed_store(store)

    logger.info(
        "menu_store_ready",
        backend=store.engine.url.get_backend_name(),
        environment=settings.environment,
    )
    return store
