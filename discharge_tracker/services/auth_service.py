from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from discharge_tracker.core.database import transaction
from discharge_tracker.core.exceptions import AuthenticationError
from discharge_tracker.core.security import create_access_token, get_password_hash, verify_password
from discharge_tracker.models.user import StaffUser
from discharge_tracker.schemas.auth import LoginRequest, RegisterRequest
from discharge_tracker.workflows.registry import normalize_department


class DuplicateUserError(Exception):
    pass


def get_user_by_user_id(db: Session, user_id: str) -> StaffUser | None:
    return db.query(StaffUser).filter(StaffUser.user_id == user_id.strip()).first()


def register_user(db: Session, payload: RegisterRequest) -> StaffUser:
    """
    Create a staff login. The password is stored hashed.
    """
    if get_user_by_user_id(db, payload.user_id):
        raise DuplicateUserError(f"User '{payload.user_id}' already exists.")

    user = StaffUser(
        user_id=payload.user_id.strip(),
        username=payload.username.strip(),
        department=normalize_department(payload.department),
        hashed_password=get_password_hash(payload.password),
        fcm_token=payload.fcm_token,
    )
    try:
        with transaction(db):
            db.add(user)
    except IntegrityError as exc:
        raise DuplicateUserError(f"User '{payload.user_id}' already exists.") from exc

    db.refresh(user)
    return user


def authenticate_user(db: Session, login_data: LoginRequest) -> StaffUser:
    user = get_user_by_user_id(db, login_data.user_id)
    if not user:
        raise AuthenticationError("Invalid credentials")

    if not verify_password(login_data.password, user.hashed_password):
        raise AuthenticationError("Invalid credentials")

    return user


def issue_access_token_for_user(user: StaffUser) -> str:
    return create_access_token(subject=user.user_id, department=user.department)


def update_fcm_token(db: Session, *, user_id: str, fcm_token: str | None) -> StaffUser | None:
    """Store the device push token for a user. Returns None if the user is unknown."""
    with transaction(db):
        user = get_user_by_user_id(db, user_id)
        if user is None:
            return None
        user.fcm_token = fcm_token or None
    return user
