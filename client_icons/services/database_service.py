# client_icons/services/database_service.py
from contextlib import contextmanager
from typing import Iterator
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from client_icons.core.config import Config
from client_icons.models import Base
import logging


logger = logging.getLogger(__name__)

class DatabaseService:
    """Centralized database connection and session management."""

    def __init__(self, db_url: str = None, engine: Engine = None):
        if engine is None:
            url = db_url or Config.database.DATABASE_URL
            engine = create_engine(url, **Config.database.get_engine_options(url))
        self.engine = engine
        # Objects stay readable after commit; bulk walks commit per client
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_all(self):
        """Create missing tables (tests and local setups; production uses Alembic)."""
        Base.metadata.create_all(self.engine)

    @contextmanager
    def get_session(self) -> Iterator[Session]:
        """Context manager for one transaction: commit on success, rollback on error."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            session.close()

    def new_session(self) -> Session:
        """Session whose transactions the caller manages (bulk walks)."""
        return self.SessionLocal()

    def dispose(self):
        self.engine.dispose()
