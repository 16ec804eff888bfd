import logging
from collections.abc import Generator

from sqlmodel import Session, SQLModel, create_engine

from customer_directory.core.config import settings

# Registers the user store tables on SQLModel.metadata
from customer_directory.data_access import models  # noqa: F401


database_url = settings.DATABASE_URL

if not database_url:
    raise ValueError("DATABASE_URL environment variable is not set in .env")

# SQLite needs cross-thread access since FastAPI runs sync routes in a threadpool
connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}

# Use pool_pre_ping for stability behind connection poolers
engine = create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)
logger = logging.getLogger(__name__)

def create_db_and_tables() -> None:
    """Creates the user, attribute and role tables if they don't exist.

    The store is normally owned by another system; this only bootstraps an
    empty local database so the API can start against a fresh file.
    """
    SQLModel.metadata.create_all(engine)
    logger.info("User store tables verified.")


def get_session() -> Generator[Session, None, None]:
    """FastAPI dependency to provide a database session."""
    with Session(engine) as session:
        yield session
