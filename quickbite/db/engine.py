"""Engine and session factory for the menu store."""
from __future__ import annotations

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from quickbite.core.config import Settings

EPHEMERAL_URL = "sqlite+pysqlite:///:memory:"


def create_store_engine(settings: Settings) -> Engine:
    """Build the engine described by ``settings``.

    The testing environment always gets a private in-memory SQLite database,
    whatever ``database_url`` says. PostgreSQL connections carry a connect
    timeout and a server-side ``statement_timeout`` so no store call blocks
    indefinitely.
    """
    if settings.is_testing:
        return create_engine(
            EPHEMERAL_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    url = make_url(settings.database_url)
    if url.get_backend_name() == "sqlite":
        return create_engine(
            url,
            connect_args={
                "check_same_thread": False,
                "timeout": settings.db_connect_timeout,
            },
        )

    return create_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_pool_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_pre_ping=True,
        connect_args={
            "connect_timeout": settings.db_connect_timeout,
            "options": f"-c statement_timeout={settings.db_statement_timeout_ms}",
        },
    )


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
