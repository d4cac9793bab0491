from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from datetime import datetime
from portal.database import get_db
from portal.schemas.user import UserCreate, UserLogin, AccountDetailsIn
from portal.services.auth_service import register_user, authenticate_user, create_user_token, user_to_item
from portal.api.deps import get_current_user
from portal.models.user import User, AccountDetails
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

ACCOUNT_FIELDS = {
    "holderName": "holder_name",
    "bankName": "bank_name",
    "accountNumber": "account_number",
    "ifsc": "ifsc",
    "branch": "branch",
    "upiId": "upi_id",
}


def _account_to_item(details: AccountDetails) -> dict:
    item = details.snapshot()
    item["addedAt"] = details.added_at.isoformat() if details.added_at else None
    item["updatedAt"] = details.updated_at.isoformat() if details.updated_at else None
    return item


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(user_data: UserCreate, db: Session = Depends(get_db)):
    """Register a new user and return a token"""
    user = register_user(db, user_data)
    logger.info("User registered: %s (%s)", user.unique_id, user.email or user.name)
    return {
        "success": True,
        "message": "Registered",
        "token": create_user_token(user),
        "user": user_to_item(user),
    }


@router.post("/login")
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    """Login by email (or name for accounts without an email)"""
    if not credentials.email and not credentials.name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email or name required"
        )
    user = authenticate_user(db, credentials.email, credentials.password, name=credentials.name)
    return {
        "success": True,
        "token": create_user_token(user),
        "user": user_to_item(user),
    }


@router.get("/me")
def get_me(current_user: User = Depends(get_current_user)):
    """Get current user profile, wallet included"""
    item = user_to_item(current_user)
    details = current_user.account_details
    item["accountDetails"] = _account_to_item(details) if details else None
    return {"success": True, "user": item}


@router.get("/account")
def get_account_details(current_user: User = Depends(get_current_user)):
    """Get bank/UPI details used for payouts"""
    details = current_user.account_details
    return {"success": True, "accountDetails": _account_to_item(details) if details else None}


@router.post("/account", status_code=status.HTTP_201_CREATED)
def add_account_details(
    body: AccountDetailsIn,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Add bank/UPI details. Only one record per user; use PUT to change it."""
    if current_user.account_details:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Account details already exist. Use update instead."
        )
    if not body.accountNumber and not body.upiId:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Account number or UPI id required"
        )

    details = AccountDetails(user_id=current_user.id)
    for field, column in ACCOUNT_FIELDS.items():
        setattr(details, column, getattr(body, field))
    db.add(details)
    db.commit()
    db.refresh(details)
    return {"success": True, "message": "Account details added", "accountDetails": _account_to_item(details)}


@router.put("/account")
def update_account_details(
    body: AccountDetailsIn,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Overwrite the fields present in the body. Existing payout requests keep their snapshot."""
    details = current_user.account_details
    if not details:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No account details on file"
        )

    for field in body.model_fields_set:
        column = ACCOUNT_FIELDS.get(field)
        if column:
            setattr(details, column, getattr(body, field))
    details.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(details)
    return {"success": True, "message": "Account details updated", "accountDetails": _account_to_item(details)}
