import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from amigo_api.core.errors import StorageError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def build_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        # Tests and local runs: threads share one file, writers wait on the lock.
        return create_engine(database_url, connect_args={"check_same_thread": False, "timeout": 10})
    return create_engine(database_url, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def apply_deadline(db: Session, timeout_s: float) -> None:
    """Bound every statement of the current transaction to `timeout_s`.

    PostgreSQL cancels the statement once the deadline passes; the driver error
    then surfaces through `storage_errors`. Other dialects run unbounded.
    """
    if db.get_bind().dialect.name != "postgresql":
        return
    db.execute(text(f"SET LOCAL statement_timeout = {max(int(timeout_s * 1000), 1)}"))


@contextmanager
def storage_errors(db: Session, action: str) -> Iterator[None]:
    """Roll back and re-raise any SQLAlchemy failure as StorageError. No retry."""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("storage failure during %s", action)
        raise StorageError(f"{action}: {getattr(e, 'orig', None) or e}") from e
