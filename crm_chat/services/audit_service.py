from __future__ import annotations

import uuid
from typing import Any, Optional

from sqlalchemy.orm import Session

from crm_chat.models.user_activity import UserActivity


def log_activity(
    db: Session,
    *,
    user_id: Optional[uuid.UUID],
    activity_type: str,
    ip_address: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> UserActivity:
    activity = UserActivity(
        user_id=user_id,
        activity_type=activity_type,
        details=details or {},
        ip_address=ip_address,
    )
    db.add(activity)
    db.commit()
    return activity


def list_activities(
    db: Session,
    *,
    user_id: Optional[uuid.UUID] = None,
    activity_types: Optional[list[str]] = None,
    limit: int = 100,
) -> list[UserActivity]:
    """Newest activities first, optionally restricted to one user or type set."""
    query = db.query(UserActivity)
    if user_id:
        query = query.filter(UserActivity.user_id == user_id)
    if activity_types:
        query = query.filter(UserActivity.activity_type.in_(activity_types))
    return query.order_by(UserActivity.created_at.desc()).limit(limit).all()
