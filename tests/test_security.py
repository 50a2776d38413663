"""
Token issuance and validation.
"""
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from amigo_api.core.errors import AuthError, StorageError
from amigo_api.core.security import Identity, TokenIssuer, TokenValidator

SECRET = "issuer-secret-0123456789abcdef0123456789abcdef0123456789abcdef"
OTHER_SECRET = "another-secret-0123456789abcdef0123456789abcdef0123456789abcd"


def _fixed(at: datetime):
    return lambda: at


def test_issue_then_validate_round_trip():
    issuer = TokenIssuer(SECRET, timedelta(minutes=5))
    token, expires_at = issuer.issue("user-1", "+82 10-1111-2222")

    identity = TokenValidator(SECRET).validate(f"Bearer {token}")

    assert identity == Identity(uid="user-1", phone="+82 10-1111-2222")
    assert expires_at > datetime.now(timezone.utc)


def test_claims_follow_the_clock():
    now = datetime(2026, 1, 1, 12, 0, 0, 500000, tzinfo=timezone.utc)
    token, expires_at = TokenIssuer(SECRET, timedelta(hours=1), clock=_fixed(now)).issue("u", "123456")

    claims = jwt.decode(token, options={"verify_signature": False})
    issued = int(now.replace(microsecond=0).timestamp())
    assert claims == {"sub": "u", "phone": "123456", "iat": issued, "nbf": issued, "exp": issued + 3600}
    assert expires_at == now.replace(microsecond=0) + timedelta(hours=1)


def test_issue_is_deterministic_for_fixed_clock():
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    issuer = TokenIssuer(SECRET, timedelta(minutes=1), clock=_fixed(now))
    assert issuer.issue("u", "123456") == issuer.issue("u", "123456")


def test_expired_token_is_rejected():
    past = datetime.now(timezone.utc) - timedelta(hours=2)
    token, _ = TokenIssuer(SECRET, timedelta(hours=1), clock=_fixed(past)).issue("u", "123456")

    with pytest.raises(AuthError, match="token expired"):
        TokenValidator(SECRET).validate(f"Bearer {token}")


def test_other_secret_is_rejected_even_when_unexpired():
    token, _ = TokenIssuer(OTHER_SECRET, timedelta(hours=1)).issue("u", "123456")

    with pytest.raises(AuthError, match="invalid token"):
        TokenValidator(SECRET).validate(f"Bearer {token}")


def test_other_secret_is_rejected_when_expired_too():
    past = datetime.now(timezone.utc) - timedelta(hours=2)
    token, _ = TokenIssuer(OTHER_SECRET, timedelta(hours=1), clock=_fixed(past)).issue("u", "123456")

    with pytest.raises(AuthError):
        TokenValidator(SECRET).validate(f"Bearer {token}")


def _claims(**overrides):
    now = int(datetime.now(timezone.utc).timestamp())
    claims = {"sub": "u", "phone": "123456", "iat": now, "nbf": now, "exp": now + 600}
    claims.update(overrides)
    return claims


def test_unpinned_algorithms_are_rejected():
    """Same secret, different HMAC family member: still refused."""
    hs512 = jwt.encode(_claims(), SECRET, algorithm="HS512")
    with pytest.raises(AuthError, match="invalid token"):
        TokenValidator(SECRET).validate(f"Bearer {hs512}")


def test_alg_none_is_rejected():
    unsigned = jwt.encode(_claims(), None, algorithm="none")
    with pytest.raises(AuthError, match="invalid token"):
        TokenValidator(SECRET).validate(f"Bearer {unsigned}")


def test_empty_subject_is_rejected():
    token = jwt.encode(_claims(sub=""), SECRET, algorithm="HS256")
    with pytest.raises(AuthError, match="invalid token claims"):
        TokenValidator(SECRET).validate(f"Bearer {token}")


def test_missing_expiry_is_rejected():
    claims = _claims()
    del claims["exp"]
    token = jwt.encode(claims, SECRET, algorithm="HS256")
    with pytest.raises(AuthError, match="invalid token"):
        TokenValidator(SECRET).validate(f"Bearer {token}")


@pytest.mark.parametrize("header", [None, "", "   "])
def test_absent_header(header):
    with pytest.raises(AuthError, match="missing bearer token"):
        TokenValidator(SECRET).validate(header)


@pytest.mark.parametrize("header", ["Basic abc", "Bearer", "Bearer ", "Token abc.def.ghi", "Bearer a b"])
def test_malformed_scheme(header):
    with pytest.raises(AuthError, match="malformed authorization header"):
        TokenValidator(SECRET).validate(header)


def test_scheme_is_case_insensitive():
    token, _ = TokenIssuer(SECRET, timedelta(minutes=5)).issue("u", "123456")
    assert TokenValidator(SECRET).validate(f"bearer {token}").uid == "u"


def test_garbage_token_is_invalid():
    with pytest.raises(AuthError, match="invalid token"):
        TokenValidator(SECRET).validate("Bearer not-a-jwt")


def test_signing_fault_surfaces_as_storage_error():
    issuer = TokenIssuer(SECRET, timedelta(minutes=5))
    with pytest.raises(StorageError, match="failed to sign token"):
        issuer.issue(object(), "123456")
