from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from crm_chat.api.dependencies import get_current_user
from crm_chat.api.schemas import ProfileUpdate, UserRead
from crm_chat.core.database import get_db
from crm_chat.core.messages import AUTH_CURRENT_PASSWORD_INCORRECT, REG_EMAIL_EXISTS
from crm_chat.core.security import get_password_hash, verify_password
from crm_chat.models.user import User
from crm_chat.models.user_activity import ActivityType
from crm_chat.services.audit_service import log_activity


router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=UserRead)
def get_profile(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("", response_model=UserRead)
def update_profile(
    request: Request,
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update profile fields and, with the current password, the password."""
    ip_address = request.client.host if request.client else None

    password_changed = False
    if payload.current_password and payload.new_password:
        if not verify_password(payload.current_password, current_user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=AUTH_CURRENT_PASSWORD_INCORRECT,
            )
        try:
            current_user.password_hash = get_password_hash(payload.new_password)
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e),
            )
        password_changed = True

    if payload.email and payload.email.lower() != current_user.email:
        email = payload.email.lower()
        if db.query(User).filter(User.email == email).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=REG_EMAIL_EXISTS,
            )
        current_user.email = email

    updates = payload.model_dump(include={"name", "phone", "profile_picture"}, exclude_none=True)
    for key, value in updates.items():
        setattr(current_user, key, value)

    db.add(current_user)
    db.commit()
    db.refresh(current_user)

    log_activity(
        db,
        user_id=current_user.id,
        activity_type=ActivityType.PROFILE_UPDATE,
        ip_address=ip_address,
        details={"fields": sorted(updates)},
    )
    if password_changed:
        log_activity(
            db,
            user_id=current_user.id,
            activity_type=ActivityType.PASSWORD_CHANGE,
            ip_address=ip_address,
        )

    db.refresh(current_user)
    return current_user
