"""
SQLAlchemy engine and session factory for the reconciliation database.
"""

from typing import Optional

from loguru import logger
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from envoice.exceptions import DatabaseConnectionError

Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url, pool_pre_ping=True)


class Database:
    """Owns the engine and session factory for one database URL."""

    def __init__(self, database_url: str, engine: Optional[Engine] = None):
        self.database_url = database_url
        self.engine = engine or build_engine(database_url)
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine
        )

    def create_tables(self) -> None:
        """Create missing tables for all registered models."""
        import envoice.models.records  # noqa: F401  Registers ORM models

        Base.metadata.create_all(bind=self.engine)

    def test_connection(self) -> None:
        """
        Verify the database is reachable.

        Raises:
            DatabaseConnectionError: If a connection cannot be established
        """
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            logger.info("Database connection established")
        except Exception as e:
            logger.error(f"Could not connect to database: {e}")
            raise DatabaseConnectionError(
                database_url=self.engine.url.render_as_string(hide_password=True),
                original_exception=e,
            ) from e

    def dispose(self) -> None:
        self.engine.dispose()
