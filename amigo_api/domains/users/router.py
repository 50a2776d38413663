from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from amigo_api.core.deps import get_db, get_identity
from amigo_api.core.security import Identity
from amigo_api.domains.users.schemas import UserOut
from amigo_api.domains.users.service import get_user


router = APIRouter()


@router.get("/me", response_model=UserOut)
def me(request: Request, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)) -> UserOut:
    user = get_user(db, identity.uid, timeout_s=request.app.state.settings.db_read_timeout_seconds)
    # Token is self-contained; a missing row still answers with the token's identity.
    return UserOut(id=identity.uid, phone=identity.phone, nickname=user.nickname if user else None)
