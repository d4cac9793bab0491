"""
Referral leads and their admin-driven earnings.

Activation credits the referrer once with the referral amount; changing the
amount while active credits or debits only the difference. Deactivation
clears the activation time and never claws back what was already paid.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from fastapi import HTTPException, Request, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from portal.models.admin import Admin
from portal.models.referral import Referral, ReferralStatus
from portal.models.user import User
from portal.services.wallet_service import commit_wallet_change, lock_users
from portal.utils.admin_activity import log_admin_activity
from portal.utils.money import parse_amount, round_money, to_float
from portal.utils.notification_helper import create_notification

logger = logging.getLogger(__name__)

REFERRAL_STATUSES = (ReferralStatus.ACTIVE.value, ReferralStatus.INACTIVE.value)


def register_referral(
    db: Session,
    name: Optional[str],
    email: Optional[str] = None,
    phone: Optional[str] = None,
    referrer_unique_id: Optional[str] = None,
) -> Referral:
    """Record a lead; reuses an existing lead for the same referrer and email/phone."""
    if not name or not name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name is required")

    referrer_code = str(referrer_unique_id).strip() if referrer_unique_id else None
    referrer = None
    if referrer_code:
        referrer = db.query(User).filter(User.unique_id == referrer_code).first()

    referral = None
    contact_clauses = []
    if email:
        contact_clauses.append(Referral.email == email)
    if phone:
        contact_clauses.append(Referral.phone == phone)
    if contact_clauses:
        referral = (
            db.query(Referral)
            .filter(Referral.referrer_unique_id == referrer_code, or_(*contact_clauses))
            .first()
        )

    if referral:
        referral.name = referral.name or name
        referral.email = referral.email or email
        referral.phone = referral.phone or phone
        if referrer:
            referral.referrer_id = referrer.id
    else:
        referral = Referral(
            name=name.strip(),
            email=email,
            phone=phone,
            referrer_unique_id=referrer_code,
            referrer_id=referrer.id if referrer else None,
        )
        db.add(referral)

    # Link the lead to an account that already signed up with the same contact details
    if not referral.referred_id and (email or phone):
        user_query = db.query(User)
        if email:
            user_query = user_query.filter(User.email == email)
        if phone:
            user_query = user_query.filter(User.phone == phone)
        existing_user = user_query.first()
        if existing_user:
            referral.referred_id = existing_user.id
            referral.referred_unique_id = existing_user.unique_id

    db.commit()
    db.refresh(referral)
    return referral


def link_referrals_to_new_user(db: Session, user: User, referrer_code: Optional[str] = None) -> int:
    """Attach leads matching a freshly registered user's contact details (or ref code) to that user."""
    clauses = []
    if referrer_code:
        clauses.append(Referral.referrer_unique_id == str(referrer_code))
    if user.email:
        clauses.append(Referral.email == user.email)
    if user.phone:
        clauses.append(Referral.phone == user.phone)
    if not clauses:
        return 0

    referrer = None
    if referrer_code:
        referrer = db.query(User).filter(User.unique_id == str(referrer_code)).first()

    candidates = db.query(Referral).filter(or_(*clauses)).all()
    for candidate in candidates:
        candidate.referred_id = user.id
        candidate.referred_unique_id = user.unique_id
        if referrer:
            candidate.referrer_id = referrer.id
    db.commit()
    return len(candidates)


def list_referrals_for_referrer(db: Session, user: User) -> dict:
    referrals = (
        db.query(Referral)
        .filter(or_(Referral.referrer_id == user.id, Referral.referrer_unique_id == user.unique_id))
        .order_by(Referral.created_at.desc())
        .all()
    )
    total = sum(
        (round_money(r.amount or 0) for r in referrals if r.status == ReferralStatus.ACTIVE.value),
        Decimal("0.00"),
    )
    return {"referrals": [referral_to_item(r) for r in referrals], "total": to_float(total)}


def _resolve_referrer_id(db: Session, referral: Referral) -> Optional[str]:
    if referral.referrer_id:
        return referral.referrer_id
    if referral.referrer_unique_id:
        referrer = db.query(User).filter(User.unique_id == referral.referrer_unique_id).first()
        if referrer:
            referral.referrer_id = referrer.id
            return referrer.id
    return None


def update_referral(
    db: Session,
    referral_id: str,
    admin: Admin,
    new_status: Optional[str] = None,
    amount: Any = None,
    admin_notes: Optional[str] = None,
    request: Optional[Request] = None,
) -> Referral:
    referral = db.query(Referral).filter(Referral.id == referral_id).with_for_update().first()
    if not referral:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Referral not found")

    prev_status = referral.status
    prev_amount = round_money(referral.amount or 0)

    if amount is not None:
        parsed = parse_amount(amount)
        if parsed is None or parsed < 0:
            db.rollback()
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid amount")
        referral.amount = round_money(parsed)

    if admin_notes is not None:
        referral.admin_notes = admin_notes

    if new_status is not None:
        if new_status not in REFERRAL_STATUSES:
            db.rollback()
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid status")
        referral.status = new_status
        if new_status == ReferralStatus.ACTIVE.value and not referral.activated_at:
            referral.activated_at = datetime.utcnow()
        if new_status == ReferralStatus.INACTIVE.value:
            referral.activated_at = None

    new_amount = round_money(referral.amount or 0)
    label = referral.name or referral.referred_unique_id
    credit = None
    title = body = None

    if prev_status != ReferralStatus.ACTIVE.value and referral.status == ReferralStatus.ACTIVE.value:
        credit = new_amount
        title = "Referral activated"
        body = f"Your referral {label} is active. You earned ₹{new_amount}."
    elif (
        prev_status == ReferralStatus.ACTIVE.value
        and referral.status == ReferralStatus.ACTIVE.value
        and new_amount != prev_amount
    ):
        credit = round_money(new_amount - prev_amount)
        sign = "+" if credit >= 0 else ""
        title = "Referral earning updated"
        body = f"Earning for {label} updated by ₹{sign}{credit}."

    if credit:
        referrer_id = _resolve_referrer_id(db, referral)
        if referrer_id:
            referrer = lock_users(db, [referrer_id]).get(referrer_id)
            if referrer:
                new_wallet = round_money((referrer.wallet or 0) + credit)
                if new_wallet < 0:
                    db.rollback()
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail="Referrer wallet balance is insufficient for this adjustment"
                    )
                referrer.wallet = new_wallet
                create_notification(
                    db,
                    user_id=referrer.id,
                    type="referral",
                    title=title,
                    message=body,
                    data={"referral_id": referral.id, "amount": str(credit)},
                    commit=False,
                )
                logger.info("Referral %s credited %s to %s", referral.id, credit, referrer.unique_id)
        else:
            logger.warning("Referral %s has no resolvable referrer, wallet not credited", referral.id)

    log_admin_activity(
        db=db,
        admin_id=admin.id,
        action="referral_updated",
        entity_type="referral",
        entity_id=referral.id,
        details={
            "status": referral.status,
            "previousStatus": prev_status,
            "amount": str(new_amount),
            "previousAmount": str(prev_amount),
        },
        request=request,
        commit=False,
    )
    commit_wallet_change(db)
    db.refresh(referral)
    return referral


def _user_brief(user: Optional[User]) -> Optional[dict]:
    if not user:
        return None
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "uniqueId": user.unique_id,
    }


def referral_to_item(r: Referral, users_by_unique_id: Optional[dict] = None) -> dict:
    users_by_unique_id = users_by_unique_id or {}
    referrer = r.referrer or users_by_unique_id.get(r.referrer_unique_id)
    referred = r.referred or users_by_unique_id.get(r.referred_unique_id)
    return {
        "id": r.id,
        "name": r.name,
        "email": r.email,
        "phone": r.phone,
        "amount": to_float(r.amount),
        "status": r.status,
        "adminNotes": r.admin_notes or "",
        "referrerUniqueId": r.referrer_unique_id,
        "referredUniqueId": r.referred_unique_id,
        "referrer": _user_brief(referrer),
        "referred": _user_brief(referred),
        "createdAt": r.created_at.isoformat() if r.created_at else None,
        "activatedAt": r.activated_at.isoformat() if r.activated_at else None,
    }


def list_referrals_for_admin(db: Session, limit: int = 500) -> List[dict]:
    referrals = db.query(Referral).order_by(Referral.created_at.desc()).limit(limit).all()
    codes = {
        code
        for r in referrals
        for code in (r.referrer_unique_id, r.referred_unique_id)
        if code
    }
    users_by_unique_id = {}
    if codes:
        users = db.query(User).filter(User.unique_id.in_(codes)).all()
        users_by_unique_id = {u.unique_id: u for u in users}
    return [referral_to_item(r, users_by_unique_id) for r in referrals]
