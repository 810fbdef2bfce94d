import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from tradapi.config import Settings
from tradapi.core.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)


class Database:
    """
    Process-wide store handle.

    Acquired once when the container starts and handed to every service that
    needs the store. When no credential is configured the handle is created in
    a disabled state: `available` is False and opening a session raises
    StoreUnavailableError so callers can fall back.
    """

    def __init__(self, url: Optional[str], echo: bool = False, pool_size: int = 10, max_overflow: int = 20):
        self.url = url
        self.engine: Optional[Engine] = None
        self.SessionLocal: Optional[sessionmaker] = None

        if not url:
            logger.warning("No database credential configured; server-side store access is disabled")
            return

        if url.startswith("sqlite"):
            engine_kwargs = {"connect_args": {"check_same_thread": False}}
        else:
            engine_kwargs = {
                "pool_size": pool_size,
                "max_overflow": max_overflow,
                "pool_pre_ping": True,  # 연결 유효성 검사
                "pool_recycle": 3600,
            }

        self.engine = create_engine(url, echo=echo, **engine_kwargs)
        # expire_on_commit=False avoids DetachedInstanceError when attributes are
        # read after commit within the same request scope.
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.database_url,
            echo=settings.DEBUG,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
        )

    @property
    def available(self) -> bool:
        return self.SessionLocal is not None

    def session(self) -> Session:
        if self.SessionLocal is None:
            raise StoreUnavailableError()
        return self.SessionLocal()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Session that commits on success and rolls back on error"""
        db = self.session()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def create_all(self) -> None:
        from tradapi.models import Base

        if self.engine is None:
            raise StoreUnavailableError()
        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
