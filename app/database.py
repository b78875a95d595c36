# app/database.py
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from app.core.config import get_settings

settings = get_settings()

# ---------------------------------------------------------
# Local key-value store (guest cart snapshots)
#
# SQLite by default. The cart service runs on one event loop,
# but FastAPI may run sync dependencies in a threadpool, so
# SQLite's same-thread check is disabled.
# In-memory SQLite ("sqlite://") must share one connection,
# otherwise every connection sees an empty database.
# ---------------------------------------------------------


def build_engine(db_url: str):
    if not db_url.startswith("sqlite"):
        return create_engine(db_url, echo=False, pool_pre_ping=True)

    kwargs = {"connect_args": {"check_same_thread": False}}
    if db_url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return create_engine(db_url, echo=False, **kwargs)


engine = build_engine(settings.DATABASE_URL)


def create_db_and_tables(bind=None) -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup (and by tests with their
    own in-memory engine).
    """
    SQLModel.metadata.create_all(bind or engine)

