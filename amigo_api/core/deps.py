from collections.abc import Iterator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from amigo_api.core.security import Identity, TokenValidator
from amigo_api.domains.identity.recorder import OtpRequestRecorder
from amigo_api.domains.identity.service import AuthService


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_otp_recorder(request: Request) -> OtpRequestRecorder:
    return request.app.state.otp_recorder


def get_token_validator(request: Request) -> TokenValidator:
    return request.app.state.token_validator


def get_identity(request: Request, validator: TokenValidator = Depends(get_token_validator)) -> Identity:
    """Gate for protected routes. Raises AuthError (401) before the route body runs."""
    return validator.validate(request.headers.get("authorization"))
