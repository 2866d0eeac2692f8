"""Bring the billing schema to the latest alembic revision.

Run with ``python -m restroflow.database.init_db``. A failed upgrade is
raised, never papered over: the database holds invoices and payment state.
"""

from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config as AlembicConfig
from alembic.runtime.migration import MigrationContext

import restroflow.database.db as db_module
from restroflow.core.startup import bootstrap
from restroflow.database.models import Base

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]
IN_MEMORY_URLS = {"sqlite://", "sqlite:///:memory:"}


def _build_alembic_config(database_url: str) -> AlembicConfig:
    cfg = AlembicConfig(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", database_url)
    return cfg


def current_revision() -> str | None:
    with db_module.get_engine().connect() as conn:
        return MigrationContext.configure(conn).get_current_revision()


def init_db() -> str | None:
    """Upgrade to ``head`` and return the resulting revision."""
    bootstrap()
    active_url = db_module.get_active_database_url()

    if active_url in IN_MEMORY_URLS:
        # Alembic opens its own connection, which would see a different in-memory DB.
        Base.metadata.create_all(bind=db_module.get_engine())
        logger.info("database.schema.created", extra={"event": "database.schema.created", "mode": "create_all"})
        return None

    before = current_revision()
    command.upgrade(_build_alembic_config(active_url), "head")
    after = current_revision()
    logger.info(
        "database.schema.upgraded",
        extra={
            "event": "database.schema.upgraded",
            "from_revision": before,
            "to_revision": after,
            "database_url_scheme": active_url.split("://", 1)[0],
        },
    )
    return after


if __name__ == "__main__":
    init_db()
