"""
Admin Referral Endpoints
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from portal.database import get_db
from portal.models.admin import Admin
from portal.schemas.referral import ReferralUpdate
from portal.api.admin_deps import get_current_admin, require_admin_or_super_admin
from portal.services.referral_service import list_referrals_for_admin, referral_to_item, update_referral

router = APIRouter()


@router.get("")
async def list_referrals(
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """All referrals, newest first, with referrer/referred accounts attached"""
    return {"success": True, "referrals": list_referrals_for_admin(db)}


@router.post("/{referral_id}")
async def edit_referral(
    referral_id: str,
    body: ReferralUpdate,
    request: Request,
    admin: Admin = Depends(require_admin_or_super_admin),
    db: Session = Depends(get_db)
):
    """
    Update status, amount and notes. Activation credits the referrer;
    an amount change on an active referral credits or debits the difference.
    """
    referral = update_referral(
        db,
        referral_id,
        admin,
        new_status=body.status,
        amount=body.amount,
        admin_notes=body.adminNotes,
        request=request,
    )
    return {"success": True, "message": "Referral updated", "referral": referral_to_item(referral)}
