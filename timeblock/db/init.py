"""Initialize database tables."""
import logging

from sqlmodel import SQLModel

# Imported so their tables register on SQLModel.metadata
from timeblock.models.category import Category  # noqa: F401
from timeblock.models.recurrence_template import RecurrenceTemplate  # noqa: F401
from timeblock.models.task import Task  # noqa: F401
from timeblock.db.config import engine

logger = logging.getLogger(__name__)


def init_db(bind=None):
    """Create all tables in the database."""
    logger.info("[DB INIT] Creating all tables...")
    SQLModel.metadata.create_all(bind or engine)
    logger.info("[DB INIT] Tables created successfully.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
