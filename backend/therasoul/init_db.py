"""Create the database schema for the TheraSoul backend."""

import logging
from typing import Optional

from sqlalchemy.engine import Engine

from . import models  # noqa: F401  (registers tables on Base.metadata)
from .database import Base, engine

logger = logging.getLogger(__name__)


def init_db(bind: Optional[Engine] = None) -> None:
    """Create every missing table and index."""
    target = bind or engine
    Base.metadata.create_all(bind=target)
    logger.info("Database tables ensured on %s", target.url.render_as_string(hide_password=True))


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    init_db()
