from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal

import structlog
from sqlalchemy import Engine, delete, func, select, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from quickbite.core.errors import ConcurrencyConflict, MenuItemNotFound
from quickbite.db.engine import create_session_factory
from quickbite.db.models import Base, MenuItemRow
from quickbite.menu.schemas import MenuItem, MenuItemPayload, check_price_range, require_term

logger = structlog.get_logger(__name__)

SEED_LOCK_KEY = 0x51B17E


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class MenuItemStore:
    """Persistence for menu items.

    Each call opens its own session, so one store can serve concurrent
    requests. Text matching is case-insensitive everywhere.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.session_factory: sessionmaker[Session] = create_session_factory(engine)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with self.session_factory() as session:
            yield session

    def ensure_schema(self) -> None:
        Base.metadata.create_all(self.engine)

    def ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def close(self) -> None:
        self.engine.dispose()

    def count(self) -> int:
        with self._session() as session:
            return session.scalar(select(func.count()).select_from(MenuItemRow)) or 0

    def list_items(self) -> list[MenuItem]:
        return self._query(select(MenuItemRow).order_by(MenuItemRow.id))

    def get_item(self, item_id: int) -> MenuItem:
        with self._session() as session:
            row = session.get(MenuItemRow, item_id)
            if row is None:
                raise MenuItemNotFound(item_id)
            return self._row_to_item(row)

    def create_item(self, payload: MenuItemPayload) -> MenuItem:
        row = MenuItemRow(**payload.column_values())
        with self._session() as session, session.begin():
            session.add(row)
        logger.info("menu_item_created", item_id=row.id, name=row.name)
        return self._row_to_item(row)

    def create_many(self, payloads: list[MenuItemPayload]) -> list[MenuItem]:
        rows = [MenuItemRow(**payload.column_values()) for payload in payloads]
        with self._session() as session, session.begin():
            session.add_all(rows)
        return [self._row_to_item(row) for row in rows]

    def seed_if_empty(self, payloads: list[MenuItemPayload]) -> list[MenuItem]:
        """Insert ``payloads`` only if the table is empty.

        The emptiness check and the insert share one transaction. On
        PostgreSQL a transaction-scoped advisory lock serializes concurrent
        callers, so workers starting together seed the menu once.
        """
        rows = [MenuItemRow(**payload.column_values()) for payload in payloads]
        with self._session() as session, session.begin():
            if self.engine.dialect.name == "postgresql":
                session.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": SEED_LOCK_KEY})
            if session.scalar(select(func.count()).select_from(MenuItemRow)):
                return []
            session.add_all(rows)
        return [self._row_to_item(row) for row in rows]

    def update_item(self, item_id: int, payload: MenuItemPayload) -> MenuItem:
        with self._session() as session:
            row = session.get(MenuItemRow, item_id)
            if row is None:
                raise MenuItemNotFound(item_id)
            for key, value in payload.column_values().items():
                setattr(row, key, value)
            # Emit the versioned UPDATE even when no value changed
            flag_modified(row, "name")
            try:
                session.commit()
            except StaleDataError as exc:
                session.rollback()
                logger.warning("menu_item_update_conflict", item_id=item_id)
                raise ConcurrencyConflict(item_id) from exc
            logger.info("menu_item_updated", item_id=item_id, version=row.version)
            return self._row_to_item(row)

    def delete_item(self, item_id: int) -> None:
        with self._session() as session, session.begin():
            result = session.execute(delete(MenuItemRow).where(MenuItemRow.id == item_id))
            deleted = result.rowcount
        if deleted == 0:
            raise MenuItemNotFound(item_id)
        logger.info("menu_item_deleted", item_id=item_id)

    def search_by_name(self, term: str) -> list[MenuItem]:
        term = require_term("name", term)
        pattern = f"%{_escape_like(term)}%"
        return self._query(
            select(MenuItemRow)
            .where(MenuItemRow.name.ilike(pattern, escape="\\"))
            .order_by(MenuItemRow.id)
        )

    def filter_by_category(self, category: str) -> list[MenuItem]:
        category = require_term("category", category)
        return self._query(
            select(MenuItemRow)
            .where(func.lower(MenuItemRow.category) == func.lower(category))
            .order_by(MenuItemRow.id)
        )

    def filter_by_dietary_tag(self, tag: str) -> list[MenuItem]:
        tag = require_term("dietaryTag", tag)
        pattern = f"%{_escape_like(tag)}%"
        return self._query(
            select(MenuItemRow)
            .where(MenuItemRow.dietary_tag.ilike(pattern, escape="\\"))
            .order_by(MenuItemRow.id)
        )

    def filter_by_price_range(self, min_price: Decimal, max_price: Decimal) -> list[MenuItem]:
        check_price_range(min_price, max_price)
        return self._query(
            select(MenuItemRow)
            .where(MenuItemRow.price >= min_price, MenuItemRow.price <= max_price)
            .order_by(MenuItemRow.price, MenuItemRow.id)
        )

    def _query(self, statement) -> list[MenuItem]:
        with self._session() as session:
            rows = session.scalars(statement).all()
            return [self._row_to_item(row) for row in rows]

    @staticmethod
    def _row_to_item(row: MenuItemRow) -> MenuItem:
        return MenuItem(
            id=row.id,
            name=row.name,
            description=row.description,
            price=row.price,
            category=row.category,
            dietary_tag=row.dietary_tag,
        )
