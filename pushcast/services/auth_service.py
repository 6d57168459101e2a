"""
Centralized token verification — all identity decisions flow through here.

No JWT decoding should happen outside this module. Tokens are issued by the
surrounding application; pushcast only verifies them and resolves the user.
create_access_token() exists for operators' scripts and the test suite.
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from sqlalchemy.orm import Session

from pushcast.config import settings
from pushcast.models.user import User

DEFAULT_TOKEN_LIFETIME = timedelta(minutes=30)


# ── Token ─────────────────────────────────────────────────────────────────────


def create_access_token(user: User, expires_delta: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or DEFAULT_TOKEN_LIFETIME)
    payload = {
        "sub": str(user.id),
        "user_id": user.id,
        "home_server": user.home_server,
        "exp": expire,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Decode and validate a JWT. Returns payload dict or None on failure."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


# ── User Lookup ───────────────────────────────────────────────────────────────


def get_user_from_token(token: str, db: Session) -> User | None:
    """
    Resolve a JWT to an active local User.

    Only tokens whose home_server matches SERVER_DOMAIN are accepted.
    """
    payload = decode_access_token(token)
    if payload is None:
        return None

    if payload.get("home_server") != settings.SERVER_DOMAIN:
        return None

    user_id = payload.get("user_id")
    if user_id is None:
        return None
    return db.query(User).filter(User.id == int(user_id), User.is_active == True).first()  # noqa: E712
