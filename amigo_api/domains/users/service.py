import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import Insert as PgInsert, insert as pg_insert
from sqlalchemy.dialects.sqlite import Insert as SqliteInsert, insert as sqlite_insert
from sqlalchemy.orm import Session

from amigo_api.core.db import apply_deadline, storage_errors
from amigo_api.core.errors import StorageError
from amigo_api.domains.users.models import User

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}


def _dialect_insert(db: Session) -> Callable[[type[User]], PgInsert | SqliteInsert]:
    name = db.get_bind().dialect.name
    try:
        return _UPSERT_DIALECTS[name]
    except KeyError:
        raise StorageError(f"upsert not supported on dialect {name!r}")


def get_or_create_user(db: Session, *, phone: str, nickname: str | None, timeout_s: float) -> User:
    """
    Find-or-create the user for `phone` in a single statement.

    INSERT ... ON CONFLICT (phone) DO UPDATE ... RETURNING: concurrent first logins
    for the same phone all resolve to the row that won the insert. An empty nickname
    is sent as NULL and COALESCE keeps the stored one.

    The caller owns the transaction and commits.
    """
    now = datetime.now(timezone.utc)
    insert = _dialect_insert(db)
    stmt = insert(User).values(
        id=str(uuid.uuid4()),
        phone=phone,
        nickname=nickname or None,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[User.phone],
        set_={
            "nickname": func.coalesce(stmt.excluded.nickname, User.nickname),
            "updated_at": stmt.excluded.updated_at,
        },
    ).returning(User)

    with storage_errors(db, "upsert user"):
        apply_deadline(db, timeout_s)
        user = db.scalars(stmt, execution_options={"populate_existing": True}).one()

    logger.info("resolved user id=%s", user.id)
    return user


def get_user(db: Session, user_id: str, *, timeout_s: float) -> User | None:
    with storage_errors(db, "load user"):
        apply_deadline(db, timeout_s)
        return db.scalars(select(User).where(User.id == user_id)).one_or_none()
