from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from amigo_api.core.deps import get_auth_service, get_db, get_otp_recorder
from amigo_api.domains.identity.recorder import OtpRequestRecorder
from amigo_api.domains.identity.schemas import RequestCodeIn, RequestCodeOut, VerifyIn, VerifyOut
from amigo_api.domains.identity.service import AuthService
from amigo_api.utils.net import client_ip


router = APIRouter(prefix="/auth")


@router.post("/request-code", response_model=RequestCodeOut)
def request_code(
    payload: RequestCodeIn,
    request: Request,
    background: BackgroundTasks,
    service: AuthService = Depends(get_auth_service),
    recorder: OtpRequestRecorder = Depends(get_otp_recorder),
) -> RequestCodeOut:
    out, purpose = service.request_code(phone=payload.phone, purpose=payload.purpose)
    # Audit only; runs after the response and cannot fail it.
    background.add_task(
        recorder.record_quietly,
        payload.phone,
        purpose,
        client_ip(request),
        request.headers.get("user-agent"),
    )
    return out


@router.post("/verify", response_model=VerifyOut)
def verify(
    payload: VerifyIn,
    service: AuthService = Depends(get_auth_service),
    db: Session = Depends(get_db),
) -> VerifyOut:
    return service.verify(db, phone=payload.phone, code=payload.code, nickname=payload.nickname)
