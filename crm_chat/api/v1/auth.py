import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from crm_chat.api.dependencies import enforce_login_attempt_limit, get_current_user, reset_login_attempts
from crm_chat.api.schemas import LoginRequest, RegisterRequest, TokenResponse, UserRead
from crm_chat.core.database import get_db
from crm_chat.core.messages import AUTH_INVALID_CREDENTIALS, AUTH_USER_NOT_FOUND_OR_INACTIVE, REG_EMAIL_EXISTS
from crm_chat.core.security import create_access_token, get_password_hash, verify_password
from crm_chat.models.user import User
from crm_chat.models.user_activity import ActivityType
from crm_chat.services.audit_service import log_activity


logger = logging.getLogger("crm_chat.auth")

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_response(user: User) -> TokenResponse:
    token = create_access_token(subject=user.id, email=user.email, role=user.role)
    return TokenResponse(token=token, user=UserRead.model_validate(user))


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=TokenResponse)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    email = payload.email.lower()
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=REG_EMAIL_EXISTS,
        )

    try:
        password_hash = get_password_hash(payload.password)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    user = User(
        email=email,
        password_hash=password_hash,
        role=payload.role,
        name=payload.name,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("User registered: user_id=%s, role=%s", user.id, user.role)
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
def login(
    request: Request,
    payload: LoginRequest,
    db: Session = Depends(get_db),
):
    email = payload.email.lower()
    enforce_login_attempt_limit(email)

    ip_address = request.client.host if request.client else None
    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(payload.password, user.password_hash):
        log_activity(
            db,
            user_id=user.id if user else None,
            activity_type=ActivityType.LOGIN_FAILED,
            ip_address=ip_address,
            details={"email": email, "reason": "Invalid password" if user else "User not found"},
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=AUTH_INVALID_CREDENTIALS,
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=AUTH_USER_NOT_FOUND_OR_INACTIVE,
        )

    reset_login_attempts(email)
    log_activity(
        db,
        user_id=user.id,
        activity_type=ActivityType.LOGIN_SUCCESS,
        ip_address=ip_address,
    )

    return _token_response(user)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Record a logout. Access tokens are stateless and stay valid until they expire."""
    log_activity(
        db,
        user_id=current_user.id,
        activity_type=ActivityType.LOGOUT,
        ip_address=request.client.host if request.client else None,
    )
