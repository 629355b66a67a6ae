"""Prepare the teamcal database before the API starts.

An empty database gets the full schema from the models and is stamped at the
latest Alembic revision; a database that already holds ``time_entries`` is
upgraded through the migrations instead.
"""

import logging
import subprocess
import sys

from sqlalchemy import inspect

from teamcal.core.config import get_settings
from teamcal.db.base import Base
from teamcal.db.session import engine
from teamcal.models import TimeEntry, User  # noqa: F401

logger = logging.getLogger("teamcal.start")


def _alembic(*args: str) -> None:
    subprocess.check_call([sys.executable, "-m", "alembic", *args])


def prepare_database() -> None:
    tables = set(inspect(engine).get_table_names())

    if "time_entries" in tables:
        logger.info("Existing calendar database, applying migrations")
        _alembic("upgrade", "head")
        return

    logger.info(f"Empty database at {get_settings().database_url}, creating schema")
    Base.metadata.create_all(bind=engine)
    _alembic("stamp", "head")
    logger.info("Schema created and stamped at head")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    prepare_database()
