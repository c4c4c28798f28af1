import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from discharge_tracker.core.config import get_settings
from discharge_tracker.core.database import get_db
from discharge_tracker.core.exceptions import AuthenticationError
from discharge_tracker.core.security import decode_token
from discharge_tracker.models.user import StaffUser
from discharge_tracker.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UpdateTokenRequest,
    UserResponse,
)
from discharge_tracker.services.auth_service import (
    DuplicateUserError,
    authenticate_user,
    get_user_by_user_id,
    issue_access_token_for_user,
    register_user,
    update_fcm_token,
)

logger = logging.getLogger(__name__)

router = APIRouter()

settings = get_settings()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.api_v1_prefix}/auth/login")


def _user_response(user: StaffUser) -> UserResponse:
    return UserResponse(
        user_id=user.user_id,
        username=user.username,
        department=user.department,
        has_push_token=bool(user.fcm_token),
        created_at=user.created_at,
    )


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["auth"],
)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> UserResponse:
    """
    Create a staff login (user id, display name, department, password).
    """
    try:
        user = register_user(db, payload)
    except DuplicateUserError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except SQLAlchemyError as e:
        logger.error(f"Error registering user {payload.user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to register user.")

    logger.info(f"Registered user {user.user_id} ({user.department})")
    return _user_response(user)


@router.post("/login", response_model=TokenResponse, tags=["auth"])
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> TokenResponse:
    """
    Login with user id and password. Returns a bearer token plus the
    user's name and department.
    """
    if not payload.user_id.strip() or not payload.password:
        raise HTTPException(status_code=400, detail="user_id and password are required")

    try:
        user = authenticate_user(db, payload)
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc

    token = issue_access_token_for_user(user)
    return TokenResponse(
        access_token=token,
        user_id=user.user_id,
        name=user.username,
        department=user.department,
    )


@router.post("/update-token", tags=["auth"])
def update_token(payload: UpdateTokenRequest, db: Session = Depends(get_db)) -> dict:
    """
    Store (or clear) the device push token for a user.
    """
    if not payload.user_id.strip():
        raise HTTPException(status_code=400, detail="user_id is required")

    try:
        user = update_fcm_token(db, user_id=payload.user_id, fcm_token=payload.fcm_token)
    except SQLAlchemyError as e:
        logger.error(f"Error updating push token for {payload.user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update token.")

    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {"message": "Token updated successfully"}


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> StaffUser:
    """
    Dependency to retrieve the current user from a JWT bearer token.
    """
    try:
        payload = decode_token(token)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    user = get_user_by_user_id(db, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    return user


@router.get("/me", response_model=UserResponse, tags=["auth"])
def read_current_user(
    current_user: StaffUser = Depends(get_current_user),
) -> UserResponse:
    """
    Return the current authenticated user.
    """
    return _user_response(current_user)


@router.get("/users/{user_id}", response_model=UserResponse, tags=["auth"])
def read_user(user_id: str, db: Session = Depends(get_db)) -> UserResponse:
    user = get_user_by_user_id(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return _user_response(user)
