from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from portal.database import get_db
from portal.api.deps import get_current_user
from portal.models.user import User
from portal.schemas.referral import ReferralRegister
from portal.services.referral_service import register_referral, list_referrals_for_referrer, referral_to_item

router = APIRouter()


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register_lead(body: ReferralRegister, db: Session = Depends(get_db)):
    """Public: record someone referred by the holder of referrerUniqueId."""
    referral = register_referral(
        db,
        name=body.name,
        email=body.email,
        phone=body.phone,
        referrer_unique_id=body.referrerUniqueId,
    )
    return {"success": True, "message": "Referral registered", "referral": referral_to_item(referral)}


@router.get("/my")
def my_referrals(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Referrals made by the current user and the total earned from active ones."""
    return {"success": True, **list_referrals_for_referrer(db, current_user)}
