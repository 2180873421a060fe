import logging
import time
from typing import Any, Optional

import jwt
from jwt import InvalidTokenError
from passlib.context import CryptContext

from config import ALGORITHM, BCRYPT_ROUNDS, SECRET_KEY, TOKEN_ISSUER, TOKEN_TTL_DAYS
from errors import InvalidInput, Result, Unauthenticated

logger = logging.getLogger("budget-backend.security")

SECONDS_PER_DAY = 24 * 60 * 60
REQUIRED_CLAIMS = ("sub", "iat", "exp")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)

# Claim checks are done by verify_token itself, in a fixed order.
_DECODE_OPTIONS = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_iat": False,
    "verify_nbf": False,
    "verify_iss": False,
    "verify_aud": False,
    "verify_sub": False,
}


# ----------------------
# Passwords
# ----------------------

def hash_password(password: Any) -> Result:
    """Hash a plaintext password with bcrypt. The hash is in `Result.data`."""
    if not isinstance(password, str):
        return Result.failure(
            f"The password needs to be a string, instead got a {type(password).__name__}"
        )
    return Result.success(pwd_context.hash(password))


def is_password_match(stored_hash: Optional[str], candidate: Any) -> bool:
    if not stored_hash or not isinstance(candidate, str):
        return False
    try:
        return pwd_context.verify(candidate, stored_hash)
    except (ValueError, TypeError):
        # unrecognized or malformed hash
        return False


# ----------------------
# Tokens
# ----------------------

def generate_token(user_id: Any, ttl_days: int = TOKEN_TTL_DAYS) -> str:
    if not user_id:
        raise InvalidInput(f"A user id is required to generate a token, instead got: {user_id}")

    now = int(time.time())
    payload = {
        "iss": TOKEN_ISSUER,
        "sub": str(user_id),
        "iat": now,
        "exp": now + ttl_days * SECONDS_PER_DAY,
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def _is_timestamp(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def verify_token(authorization: Optional[str], now: Optional[float] = None) -> dict:
    """
    Verify the value of an `Authorization: Bearer <token>` header.

    Returns `{"user_id": <sub>}` on success. Every failure raises
    Unauthenticated, checked in this order: header missing, token missing,
    bad signature, wrong issuer, missing claims, issued in the future,
    expired. Only the last one is reported as "expired".
    """
    if not authorization or not authorization.strip():
        raise Unauthenticated("Authorization header is missing")

    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise Unauthenticated("Bearer token is missing")

    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM], options=_DECODE_OPTIONS)
    except InvalidTokenError:
        raise Unauthenticated("Token is invalid")

    if payload.get("iss") != TOKEN_ISSUER:
        raise Unauthenticated("Token is invalid")

    if any(payload.get(claim) in (None, "") for claim in REQUIRED_CLAIMS):
        raise Unauthenticated("Token is invalid")

    if not _is_timestamp(payload["iat"]) or not _is_timestamp(payload["exp"]):
        raise Unauthenticated("Token is invalid")

    now = time.time() if now is None else now

    if payload["iat"] > now:
        raise Unauthenticated("Token is invalid")

    if payload["exp"] < now:
        raise Unauthenticated("Token has expired")

    return {"user_id": str(payload["sub"])}
