"""
SQLAlchemy engine and session handling for the sales watcher store.

A ``Database`` owns one engine and one session factory. There is no
module-level engine: open a ``Database``, hand it to the stores, and close it
when done (or use it as a context manager).
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from sales_watcher.config import DatabaseConfig
from sales_watcher.models.orm import Base

logger = logging.getLogger(__name__)


def _is_in_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Connection handle for the post/listing/rule/match tables."""

    def __init__(self, url: str, echo: bool = False, chunk_size: int = 500):
        """
        Create the engine and session factory.

        Args:
            url: SQLAlchemy database URL
            echo: Log every SQL statement
            chunk_size: Page size used by stores when streaming rows
        """
        self.url = url
        self.chunk_size = chunk_size

        engine_kwargs = {"echo": echo}
        if url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if _is_in_memory_sqlite(url):
                # One shared connection, otherwise each session sees its own empty database
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_pre_ping"] = True

        self.engine: Optional[Engine] = create_engine(url, **engine_kwargs)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        self._session_factory = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        logger.info(f"Opened database {self.engine.url.render_as_string(hide_password=True)}")

    @classmethod
    def from_config(cls, db_config: DatabaseConfig) -> "Database":
        return cls(db_config.url, echo=db_config.echo, chunk_size=db_config.chunk_size)

    def _require_engine(self) -> Engine:
        if self.engine is None:
            raise RuntimeError("Database has been closed")
        return self.engine

    def create_schema(self) -> None:
        """Create any missing tables and indices. Existing tables are left alone."""
        Base.metadata.create_all(self._require_engine())
        logger.info("Database schema is in place")

    def drop_schema(self) -> None:
        Base.metadata.drop_all(self._require_engine())
        logger.warning("Dropped all sales watcher tables")

    def check_connection(self) -> bool:
        """Run ``SELECT 1``; return False (and log) if the database is unreachable."""
        try:
            with self._require_engine().connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database connection test failed: {e}")
            return False

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Session scoped to one unit of work.

        Commits when the block exits normally and rolls back on any exception,
        which is re-raised, so a failed write leaves the store unchanged.
        """
        self._require_engine()
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            logger.info("Closed database")
            self.engine = None

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
