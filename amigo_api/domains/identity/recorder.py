import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session, sessionmaker

from amigo_api.core.db import apply_deadline, storage_errors
from amigo_api.domains.identity.models import OTPRequest

logger = logging.getLogger(__name__)


def code_hint(code: str) -> str:
    return "***" + code[-3:] if len(code) >= 3 else ""


class OtpRequestRecorder:
    """
    Writes one `otp_requests` row per code request.

    Runs after the response is sent, so it opens its own session instead of
    borrowing the request's.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        fixed_code: str,
        expires_minutes: int,
        timeout_s: float,
    ) -> None:
        self._session_factory = session_factory
        self._hint = code_hint(fixed_code)
        self._expires = timedelta(minutes=expires_minutes)
        self._timeout_s = timeout_s

    def record(self, phone: str, purpose: str, ip: str | None, user_agent: str | None) -> None:
        now = datetime.now(timezone.utc)
        with self._session_factory() as db, storage_errors(db, "record otp request"):
            apply_deadline(db, self._timeout_s)
            db.add(
                OTPRequest(
                    phone=phone,
                    purpose=purpose,
                    code_hint=self._hint,
                    expires_at=now + self._expires,
                    ip=ip,
                    user_agent=user_agent,
                    created_at=now,
                )
            )
            db.commit()

    def record_quietly(self, phone: str, purpose: str, ip: str | None, user_agent: str | None) -> None:
        """Fire-and-forget wrapper: audit failures are logged, never surfaced."""
        try:
            self.record(phone, purpose, ip, user_agent)
        except Exception as e:
            logger.warning("otp request audit dropped: phone=%r err=%s", phone, e)
