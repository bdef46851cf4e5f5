"""
Database session management.

There is no module-level engine: a ``Database`` handle is built from settings
when the app is created and handed to whoever needs sessions.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from powernaija.db.base import Base


def _engine_options(url: str, echo: bool) -> dict:
    if url.startswith("sqlite"):
        options = {"echo": echo, "connect_args": {"check_same_thread": False}}
        # In-memory databases must share one connection across threads
        if url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
        return options

    return {
        "echo": echo,
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
    }


class Database:
    """Engine plus session factory for one database URL."""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine = create_engine(url, **_engine_options(url, echo))
        self.session_factory = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False
        )

    def session(self) -> Session:
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Yield a session and always close it."""
        db = self.session()
        try:
            yield db
        finally:
            db.close()

    def create_all(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    def ping(self) -> bool:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def dispose(self) -> None:
        self.engine.dispose()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Run a block as one database transaction: commit on success, roll back on error."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
