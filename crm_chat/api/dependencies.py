from __future__ import annotations

import logging
import uuid
from typing import Annotated, Callable, List

import redis
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from crm_chat.core.database import get_db
from crm_chat.core.errors import AuthError
from crm_chat.core.messages import (
    AUTH_INSUFFICIENT_PERMISSIONS,
    AUTH_REQUIRED,
    AUTH_TOO_MANY_ATTEMPTS,
    AUTH_USER_NOT_FOUND_OR_INACTIVE,
)
from crm_chat.core.permissions import has_permissions
from crm_chat.core.redis import get_redis_client
from crm_chat.core.security import Subject, subject_uuid, verify_token
from crm_chat.models.user import User


logger = logging.getLogger("crm_chat.api.dependencies")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

LOGIN_ATTEMPT_LIMIT = 5
LOGIN_ATTEMPT_WINDOW_SECONDS = 15 * 60


def get_current_subject(
    token: Annotated[str | None, Depends(oauth2_scheme)],
) -> Subject:
    """Verify the bearer credential without touching the user store."""
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=AUTH_REQUIRED,
        )
    try:
        subject = verify_token(token)
        # Routes key users by UUID
        subject_uuid(subject)
    except AuthError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=exc.message,
        )
    return subject


def get_current_user(
    subject: Annotated[Subject, Depends(get_current_subject)],
    db: Session = Depends(get_db),
) -> User:
    try:
        user_uuid = uuid.UUID(subject.id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=AUTH_USER_NOT_FOUND_OR_INACTIVE,
        )

    user: User | None = db.query(User).filter(User.id == user_uuid, User.is_active.is_(True)).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=AUTH_USER_NOT_FOUND_OR_INACTIVE,
        )
    return user


def require_permissions(required: List[str]) -> Callable[[Subject], Subject]:
    def dependency(subject: Annotated[Subject, Depends(get_current_subject)]) -> Subject:
        if not has_permissions(subject.role, required):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=AUTH_INSUFFICIENT_PERMISSIONS,
            )
        return subject

    return dependency


def enforce_login_attempt_limit(email: str) -> None:
    """Limit login attempts: 5 attempts over rolling 15 minutes."""
    r = get_redis_client()
    if r is None:
        return
    key = f"auth:login_attempts:{email.lower()}"
    try:
        attempts = r.incr(key)
        if attempts == 1:
            r.expire(key, LOGIN_ATTEMPT_WINDOW_SECONDS)
    except redis.RedisError as e:
        logger.warning("Login attempt limit skipped, Redis error: %s", e)
        return
    if attempts > LOGIN_ATTEMPT_LIMIT:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=AUTH_TOO_MANY_ATTEMPTS,
        )


def reset_login_attempts(email: str) -> None:
    r = get_redis_client()
    if r is None:
        return
    try:
        r.delete(f"auth:login_attempts:{email.lower()}")
    except redis.RedisError as e:
        logger.warning("Login attempt reset skipped, Redis error: %s", e)
