#!/usr/bin/env python3
"""
Container entrypoint: wait for the database, upgrade the ledger schema,
seed demo customers and cars, then hand the process over to uvicorn.
"""
import os
import sys

import wait_for_db  # noqa: F401  blocks until DATABASE_URL accepts connections

from alembic import command
from alembic.config import Config
from sqlalchemy.orm import sessionmaker

from app.core.config import settings
from app.core.logging import get_logger, setup_logging

setup_logging()
logger = get_logger("start_api")

HERE = os.path.dirname(os.path.abspath(__file__))


def migrate() -> None:
    cfg = Config(os.path.join(HERE, "alembic.ini"))
    cfg.set_main_option("script_location", os.path.join(HERE, "alembic"))
    cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
    command.upgrade(cfg, "head")
    logger.info("ledger schema at head")


def seed() -> None:
    # fresh engine: the app engine may have been created before the tables existed
    from app.db.session import make_engine
    from app.seed import run

    engine = make_engine(settings.DATABASE_URL)
    try:
        run(sessionmaker(autocommit=False, autoflush=False, bind=engine)())
    finally:
        engine.dispose()


def serve() -> None:
    port = os.getenv("PORT", "8000")
    logger.info("starting uvicorn on port %s", port)
    os.execv(sys.executable, [sys.executable, "-m", "uvicorn", "app.main:app", "--host", "0.0.0.0", "--port", port])


if __name__ == "__main__":
    migrate()
    seed()
    serve()
