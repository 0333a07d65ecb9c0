# WorkRule - Database Setup
# SQLAlchemy engine, session factory and session helpers

from typing import Generator, Optional
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.orm import sessionmaker, Session

from workrule.config import get_settings
from workrule.models.base import Base


_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine() -> Engine:
    """
    Get the process-wide engine, creating it on first use.

    The engine is built lazily so importing the services never needs a
    database driver.
    """
    global _engine
    if _engine is None:
        settings = get_settings()
        url = settings.database_url
        options = {
            "pool_pre_ping": True,  # Verify connections before using
            "echo": settings.debug,  # Log SQL in debug mode
        }
        if not url.startswith("sqlite"):
            options.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_timeout=settings.db_pool_timeout,
                pool_recycle=settings.db_pool_recycle,
            )
        _engine = create_engine(url, **options)
    return _engine


def get_session_factory() -> sessionmaker:
    """Get the session factory bound to the engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,  # Prevent lazy-load issues after commit
        )
    return _session_factory


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions outside of a request.

    Usage in scripts and periodic jobs:

        with get_db_context() as db:
            ExceptionWorkflowService(db, actor_id).expire_old_exceptions()
            db.commit()
    """
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """
    Create all tables defined in the models.

    WARNING: This is for development/testing only.
    In production, use Alembic migrations.
    """
    import workrule.models  # noqa: F401  register every table on Base.metadata

    Base.metadata.create_all(bind=get_engine())


def check_connection() -> bool:
    """
    Test the database connection.

    Returns True if connection succeeds, raises exception otherwise.
    """
    with get_engine().connect() as conn:
        conn.execute(text("SELECT 1"))
    return True
