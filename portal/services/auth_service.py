from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from portal.models.user import User
from portal.schemas.user import UserCreate
from portal.services.referral_service import link_referrals_to_new_user
from portal.utils.money import to_float
from portal.utils.security import get_password_hash, verify_password, create_access_token
import logging
import random
import time

logger = logging.getLogger(__name__)


def generate_unique_id(db: Session, attempts: int = 8) -> str:
    """Random 5-digit public id (10000..99999) not yet taken."""
    for _ in range(attempts):
        code = str(random.randint(10000, 99999))
        if not db.query(User).filter(User.unique_id == code).first():
            return code
    # Fall back to the last five digits of the clock
    return str(int(time.time() * 1000))[-5:]


def register_user(db: Session, user_data: UserCreate) -> User:
    """Register a new user"""
    if not user_data.name or not user_data.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Name and password required"
        )

    if user_data.phone and not (user_data.phone.isdigit() and len(user_data.phone) == 10):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Phone must be 10 digits"
        )

    if user_data.email and db.query(User).filter(User.email == user_data.email).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User already exists with that email"
        )

    user = User(
        name=user_data.name,
        email=user_data.email,
        phone=user_data.phone or None,
        password_hash=get_password_hash(user_data.password),
        unique_id=generate_unique_id(db),
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    linked = link_referrals_to_new_user(db, user, user_data.ref)
    if linked:
        logger.info("Linked %s referral lead(s) to new user %s", linked, user.unique_id)

    return user


def authenticate_user(db: Session, email: str, password: str, name: str = None) -> User:
    """Authenticate by email, or by name for accounts registered without one"""
    query = db.query(User)
    user = query.filter(User.email == email).first() if email else query.filter(User.name == name).first()
    if not user or not verify_password(password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid credentials"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )

    return user


def create_user_token(user: User) -> str:
    return create_access_token(data={"sub": str(user.id), "name": user.name})


def user_to_item(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "uniqueId": user.unique_id,
        "wallet": to_float(user.wallet),
        "createdAt": user.created_at.isoformat() if user.created_at else None,
    }
