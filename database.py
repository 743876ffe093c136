import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def build_engine(database_url: str, pool_size: int = 5, max_overflow: int = 10) -> Engine:
    """Create the engine backing the connection pool.

    In-memory SQLite gets a single shared connection so every session sees
    the same database; everything else gets a bounded QueuePool.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(
        database_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
    )


class Database:
    """Long-lived handle around the engine and its session factory."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self.session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    @classmethod
    def from_url(cls, database_url: str, pool_size: int = 5, max_overflow: int = 10) -> "Database":
        return cls(build_engine(database_url, pool_size, max_overflow))

    def session(self) -> Session:
        return self.session_factory()

    @contextmanager
    def read_session(self):
        session = self.session()
        try:
            yield session
        finally:
            session.close()

    def create_all(self):
        # local import registers the mapped tables on Base.metadata
        import models  # noqa: F401

        Base.metadata.create_all(self.engine)

    def now(self):
        with self.engine.connect() as conn:
            return conn.execute(select(func.current_timestamp())).scalar_one()

    def dispose(self):
        self.engine.dispose()
