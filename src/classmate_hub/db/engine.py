"""
Database engine and session management

The engine lives on an explicit ``Database`` object created by the app
factory and stored on ``app.state``. There is no module-level engine.
"""
import logging
import threading
from typing import Generator, Optional

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


class Database:
    """
    Owns the SQLAlchemy engine and session factory.

    ``init()`` is idempotent; if the first connection attempt fails the next
    call retries instead of reusing a broken engine. ``shutdown()`` disposes
    the pool.
    """

    def __init__(
        self,
        url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_recycle: int = 900,
        pool_timeout: int = 30,
        echo: bool = False,
    ):
        self.url = url
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_recycle = pool_recycle
        self.pool_timeout = pool_timeout
        self.echo = echo
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, settings) -> "Database":
        return cls(
            settings.DATABASE_URL,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_recycle=settings.DB_POOL_RECYCLE,
            pool_timeout=settings.DB_POOL_TIMEOUT,
        )

    def _create_engine(self) -> Engine:
        if self.url.startswith("sqlite"):
            # In-memory SQLite must share one connection across threads
            return create_engine(
                self.url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=self.echo,
            )

        connect_args = {}
        if self.url.startswith("postgresql"):
            connect_args = {
                "connect_timeout": 10,
                "keepalives": 1,
                "keepalives_idle": 60,
                "keepalives_interval": 10,
                "keepalives_count": 3,
                "application_name": "classmate_hub",
            }

        return create_engine(
            self.url,
            pool_pre_ping=True,
            pool_size=self.pool_size,
            max_overflow=self.max_overflow,
            pool_recycle=self.pool_recycle,
            pool_timeout=self.pool_timeout,
            echo=self.echo,
            connect_args=connect_args,
        )

    def init(self) -> Engine:
        """Create the engine and verify connectivity (retried on next call after a failure)"""
        with self._lock:
            if self._engine is not None:
                return self._engine

            engine = self._create_engine()
            try:
                with engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
            except OperationalError as e:
                engine.dispose()
                logger.error(f"Database connection failed: {e}")
                raise

            self._engine = engine
            self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
            logger.info(f"Database engine initialized ({engine.dialect.name})")
            return engine

    def shutdown(self) -> None:
        with self._lock:
            if self._engine is not None:
                self._engine.dispose()
                logger.info("Database engine disposed")
            self._engine = None
            self._session_factory = None

    @property
    def engine(self) -> Engine:
        return self.init()

    def session(self) -> Session:
        self.init()
        return self._session_factory()

    def ping(self) -> bool:
        """Run a trivial query; False when the store is unreachable"""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except OperationalError as e:
            logger.warning(f"Database ping failed: {e}")
            return False


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Get a database session for the current request.
    Use as FastAPI dependency: db: Session = Depends(get_db)

    Commits when the handler returns normally, rolls back otherwise.
    """
    database: Database = request.app.state.database
    db = database.session()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
