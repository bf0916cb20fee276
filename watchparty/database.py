"""
Database engine, session factory and declarative base
"""
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from watchparty.config import settings
from watchparty.utils.errors import QuizError, StorageError

logger = logging.getLogger(__name__)


def _engine_kwargs(database_url: str) -> dict:
    """SQLite needs cross-thread access and, in memory, a single shared connection"""
    if not database_url.startswith("sqlite"):
        return {"pool_pre_ping": True}

    kwargs = {"connect_args": {"check_same_thread": False}}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return kwargs


engine = create_engine(
    settings.DATABASE_URL,
    echo=False,
    **_engine_kwargs(settings.DATABASE_URL)
)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False
)

Base = declarative_base()


def get_db():
    """FastAPI dependency yielding one session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session, action: str):
    """
    Run a unit of work and commit it, or roll everything back

    QuizError passes through unchanged; any other storage failure is
    reported as StorageError so callers see one generic, retryable kind.
    """
    try:
        yield db
        db.commit()
    except QuizError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Storage failure during {action}: {str(e)}")
        raise StorageError(f"Storage failure during {action}", {"action": action}) from e


def init_db():
    """Create all tables"""
    import watchparty.models  # noqa: F401  registers the mappers on Base

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")
