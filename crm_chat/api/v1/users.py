import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from crm_chat.api.dependencies import require_permissions
from crm_chat.api.schemas import ActivityRead, UserRead
from crm_chat.core.database import get_db
from crm_chat.core.permissions import Permission, Role
from crm_chat.core.security import Subject
from crm_chat.models.user import User
from crm_chat.models.user_activity import ActivityType
from crm_chat.services.audit_service import list_activities


router = APIRouter(tags=["users"])


@router.get("/users", response_model=list[UserRead])
def list_users(
    db: Session = Depends(get_db),
    subject: Subject = Depends(require_permissions([Permission.READ_USER])),
):
    return db.query(User).order_by(User.created_at).all()


@router.get("/activities", response_model=list[ActivityRead])
def get_activities(
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    subject: Subject = Depends(require_permissions([Permission.READ_USER])),
):
    """Activity log; non-admins only see their own entries."""
    user_id = None if subject.role == Role.ADMIN else uuid.UUID(subject.id)
    return list_activities(db, user_id=user_id, limit=limit)


@router.get("/sessions", response_model=list[ActivityRead])
def get_login_sessions(
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    subject: Subject = Depends(require_permissions([Permission.READ_USER])),
):
    """Login and logout entries of the activity log."""
    user_id = None if subject.role == Role.ADMIN else uuid.UUID(subject.id)
    return list_activities(
        db,
        user_id=user_id,
        activity_types=[ActivityType.LOGIN_SUCCESS, ActivityType.LOGOUT],
        limit=limit,
    )
