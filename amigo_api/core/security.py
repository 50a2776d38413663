import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from amigo_api.core.errors import AuthError, StorageError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
BEARER = "bearer"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Identity:
    uid: str
    phone: str


class TokenIssuer:
    """Signs stateless access tokens: `{sub, phone, iat, nbf, exp}` with HS256."""

    def __init__(self, secret: str, ttl: timedelta, clock: Callable[[], datetime] = utcnow) -> None:
        self._secret = secret
        self._ttl = ttl
        self.clock = clock

    def issue(self, user_id: str, phone: str) -> tuple[str, datetime]:
        # JWT timestamps are whole seconds; keep expires_at consistent with the claim.
        now = self.clock().replace(microsecond=0)
        expires_at = now + self._ttl
        payload = {
            "sub": user_id,
            "phone": phone,
            "iat": int(now.timestamp()),
            "nbf": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        try:
            token = jwt.encode(payload, self._secret, algorithm=ALGORITHM)
        except (jwt.PyJWTError, TypeError, ValueError) as e:
            logger.exception("token signing failed")
            raise StorageError("failed to sign token") from e
        return token, expires_at


class TokenValidator:
    """Turns an Authorization header into an Identity, or raises AuthError."""

    def __init__(self, secret: str) -> None:
        self._secret = secret

    @staticmethod
    def extract_bearer(header: str | None) -> str:
        header = (header or "").strip()
        if not header:
            raise AuthError("missing bearer token")
        scheme, _, token = header.partition(" ")
        token = token.strip()
        if scheme.lower() != BEARER or not token or " " in token:
            raise AuthError("malformed authorization header")
        return token

    def validate(self, header: str | None) -> Identity:
        token = self.extract_bearer(header)
        try:
            # Pinned algorithm list: "none", HS512, RS256 and friends are refused.
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": ["exp", "iat", "nbf", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthError("token expired")
        except jwt.InvalidTokenError as e:
            logger.debug("rejected token: %s", e)
            raise AuthError("invalid token")

        uid = payload.get("sub")
        phone = payload.get("phone")
        if not isinstance(uid, str) or not uid:
            raise AuthError("invalid token claims")
        return Identity(uid=uid, phone=phone if isinstance(phone, str) else "")
