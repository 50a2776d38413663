from fastapi import APIRouter, Depends, Request
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from amigo_api.core.db import apply_deadline, storage_errors
from amigo_api.core.deps import get_db


router = APIRouter()


@router.get("/ping")
def ping() -> dict:
    return {"message": "pong"}


@router.get("/dbtime")
def dbtime(request: Request, db: Session = Depends(get_db)) -> dict:
    with storage_errors(db, "read db time"):
        apply_deadline(db, request.app.state.settings.db_read_timeout_seconds)
        now = db.scalar(select(func.now()))
    return {"now": now}
