import secrets

from sqlalchemy.orm import Session

from amigo_api.core.db import storage_errors
from amigo_api.core.errors import AuthError, InputError
from amigo_api.core.security import TokenIssuer
from amigo_api.domains.identity.schemas import RequestCodeOut, VerifyOut
from amigo_api.domains.users.schemas import UserOut
from amigo_api.domains.users.service import get_or_create_user
from amigo_api.utils.phone import looks_like_phone

DEFAULT_PURPOSE = "login"


def _require_phone(phone: str) -> None:
    if not looks_like_phone(phone):
        raise InputError("invalid phone format")


class AuthService:
    """
    Phone login with a single configured code (dev mode).

    There is no per-request challenge: any request-code call is optional and the
    submitted code is compared against `fixed_code` only. OTP expiry is advisory
    and lives in the audit log.
    """

    def __init__(self, *, fixed_code: str, issuer: TokenIssuer, write_timeout_s: float) -> None:
        self._fixed_code = fixed_code
        self._issuer = issuer
        self._write_timeout_s = write_timeout_s

    def request_code(self, *, phone: str, purpose: str | None) -> tuple[RequestCodeOut, str]:
        _require_phone(phone)
        response = RequestCodeOut(
            ok=True,
            message="verification code sent (dev: fixed code active)",
            dev_hint_code=self._fixed_code,
        )
        return response, purpose or DEFAULT_PURPOSE

    def verify(self, db: Session, *, phone: str, code: str, nickname: str | None) -> VerifyOut:
        _require_phone(phone)
        if not secrets.compare_digest(code.encode("utf-8"), self._fixed_code.encode("utf-8")):
            raise AuthError("invalid code")

        user = get_or_create_user(db, phone=phone, nickname=nickname, timeout_s=self._write_timeout_s)
        try:
            token, expires_at = self._issuer.issue(user.id, user.phone)
        except Exception:
            db.rollback()
            raise
        with storage_errors(db, "commit user"):
            db.commit()

        expires_in = int((expires_at - self._issuer.clock()).total_seconds())
        return VerifyOut(
            access_token=token,
            expires_in=max(expires_in, 0),
            user=UserOut.model_validate(user),
        )
