from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
import re
import uuid

import bcrypt
from jose import JWTError, jwt

from .config import settings
from .errors import AuthError
from .messages import AUTH_TOKEN_INVALID, AUTH_TOKEN_PAYLOAD_INVALID, AUTH_TOKEN_REQUIRED
from .permissions import ROLES, Role

PASSWORD_POLICY_REGEX = re.compile(r"^(?=.*[A-Za-z])(?=.*\d).{8,}$")

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


@dataclass(frozen=True)
class Subject:
    """Authenticated actor bound to a request or a relay connection."""

    id: str
    email: Optional[str]
    role: str


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def get_password_hash(password: str) -> str:
    if not PASSWORD_POLICY_REGEX.match(password):
        raise ValueError(
            "Password must be at least 8 characters long and contain a letter and a digit."
        )
    hashed = bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt())
    return hashed.decode("utf-8")


def create_token(
    subject: str | Any,
    expires_delta: Optional[timedelta],
    token_type: str,
    claims: Optional[dict[str, Any]] = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=15))
    payload: dict[str, Any] = {
        **(claims or {}),
        "sub": str(subject),
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
        "type": token_type,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(subject: str | Any, email: Optional[str] = None, role: str = Role.AGENT) -> str:
    expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return create_token(subject, expires, token_type="access", claims={"email": email, "role": role})


def decode_token(token: str, expected_type: str) -> dict[str, Any]:
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError as exc:
        raise AuthError(AUTH_TOKEN_INVALID) from exc
    # Tokens minted by other issuers may omit the type claim
    if payload.get("type", expected_type) != expected_type:
        raise AuthError(AUTH_TOKEN_INVALID)
    return payload


def verify_token(token: Optional[str]) -> Subject:
    """Validate a bearer credential and return its subject.

    Pure signature and expiry check; the user store is not consulted. The
    subject id is read from ``sub`` with ``userId``/``user_id`` accepted for
    tokens issued elsewhere. A token without a role is treated as an agent.
    """
    if not token:
        raise AuthError(AUTH_TOKEN_REQUIRED)

    payload = decode_token(token, expected_type="access")
    subject_id = payload.get("sub") or payload.get("userId") or payload.get("user_id")
    if not subject_id:
        raise AuthError(AUTH_TOKEN_PAYLOAD_INVALID)

    role = payload.get("role") or Role.AGENT
    if role not in ROLES:
        raise AuthError(AUTH_TOKEN_PAYLOAD_INVALID)

    return Subject(id=str(subject_id), email=payload.get("email"), role=role)


def subject_uuid(subject: Subject) -> uuid.UUID:
    """Subject id as a user UUID. Raises AuthError for ids issued elsewhere."""
    try:
        return uuid.UUID(subject.id)
    except ValueError:
        raise AuthError(AUTH_TOKEN_PAYLOAD_INVALID)
