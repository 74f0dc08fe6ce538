import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth import create_access_token, get_current_user, get_password_hash, verify_password
from database import get_db
from models import User
from schemas import (
    AuthResponse,
    LoginPayload,
    Message,
    ProfileResponse,
    PublicUserResponse,
    UserCreate,
    UserProfile,
    UserPublic,
    UserUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


def _find_by_email(db: Session, email: str):
    return db.execute(select(User).where(User.email == email.lower(), User.deleted.is_(False))).scalar_one_or_none()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: UserCreate, db: Session = Depends(get_db)):
    email = payload.email.lower()
    if _find_by_email(db, email):
        raise HTTPException(409, "User with this email already exists")

    # free the e-mail held by a soft-deleted row
    stale = db.execute(select(User).where(User.email == email, User.deleted.is_(True))).scalar_one_or_none()
    if stale is not None:
        stale.email = f"deleted-{stale.id}-{stale.email}"
        db.flush()

    user = User(
        email=email,
        password_hash=get_password_hash(payload.password),
        phone=payload.phone,
        first_name=payload.first_name,
        last_name=payload.last_name,
        is_seller=payload.is_seller,
        is_active=True,
        locale=payload.locale,
        address=payload.address,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(409, "User with this email already exists")
    logger.info("Registered user %s", user.id)
    return AuthResponse(
        message="User registered successfully",
        user=UserProfile.model_validate(user),
        token=create_access_token(user),
    )


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginPayload, db: Session = Depends(get_db)):
    user = _find_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(401, "Invalid credentials")
    if not user.is_active:
        raise HTTPException(401, "Account is not active")
    return AuthResponse(
        message="Login successful",
        user=UserProfile.model_validate(user),
        token=create_access_token(user),
    )


@router.get("/profile", response_model=ProfileResponse)
def get_profile(user: User = Depends(get_current_user)):
    return {"user": UserProfile.model_validate(user)}


@router.put("/profile", response_model=ProfileResponse)
def update_profile(payload: UserUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Null fields are skipped, so a profile value can be replaced but not cleared."""
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(400, "No fields to update")
    for field, value in changes.items():
        setattr(user, field, value)
    db.commit()
    return {"user": UserProfile.model_validate(user)}


@router.delete("/profile", response_model=Message)
def delete_profile(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    user.deleted = True
    db.commit()
    logger.info("Soft-deleted user %s", user.id)
    return {"message": "Account deleted successfully"}


@router.get("/{user_id}", response_model=PublicUserResponse)
def get_user(user_id: int, db: Session = Depends(get_db)):
    user = db.execute(
        select(User).where(User.id == user_id, User.deleted.is_(False), User.is_active.is_(True))
    ).scalar_one_or_none()
    if user is None:
        raise HTTPException(404, "User not found")
    return {"user": UserPublic.model_validate(user)}
