"""
Admin User Management Endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import Optional
from portal.database import get_db
from portal.models.user import User
from portal.models.admin import Admin
from portal.models.notification import Notification
from portal.models.referral import Referral
from portal.models.wallet import WalletTransfer
from portal.schemas.admin import AdminNotify, AdminNotifyMultiple, WalletUpdate
from portal.api.admin_deps import get_current_admin, require_admin_or_super_admin
from portal.services.auth_service import user_to_item
from portal.services.wallet_service import commit_wallet_change, lock_users
from portal.utils.admin_activity import log_admin_activity
from portal.utils.money import parse_amount, round_money, to_float
from portal.utils.notification_helper import create_notification, notification_to_item
from portal.utils.pagination import page_offset, paginate
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    isActive: Optional[bool] = None,
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """List users with wallet balances"""
    query = db.query(User)

    if search:
        query = query.filter(
            or_(
                User.name.ilike(f"%{search}%"),
                User.email.ilike(f"%{search}%"),
                User.phone.ilike(f"%{search}%"),
                User.unique_id == search,
            )
        )

    if isActive is not None:
        query = query.filter(User.is_active == isActive)

    total = query.count()
    users = query.order_by(User.created_at.desc()).offset(page_offset(page, limit)).limit(limit).all()

    return {
        "success": True,
        "users": [user_to_item(u) for u in users],
        "pagination": paginate(page, limit, total),
    }


@router.put("/{user_id}/wallet")
async def set_user_wallet(
    user_id: str,
    body: WalletUpdate,
    request: Request,
    admin: Admin = Depends(require_admin_or_super_admin),
    db: Session = Depends(get_db)
):
    """Overwrite a user's wallet balance (number >= 0, rounded to 2 places)"""
    parsed = parse_amount(body.wallet)
    if parsed is None or parsed < 0 or isinstance(body.wallet, str):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Wallet must be a non-negative number"
        )

    user = lock_users(db, [user_id]).get(user_id)
    if not user:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    previous = round_money(user.wallet or 0)
    user.wallet = round_money(parsed)

    log_admin_activity(
        db=db,
        admin_id=admin.id,
        action="wallet_updated",
        entity_type="user",
        entity_id=user.id,
        details={"previous": str(previous), "wallet": str(user.wallet)},
        request=request,
        commit=False,
    )
    commit_wallet_change(db)
    db.refresh(user)

    logger.info("Admin %s set wallet of %s from %s to %s", admin.email, user.unique_id, previous, user.wallet)
    return {"success": True, "message": "Wallet updated", "user": {"id": user.id, "wallet": to_float(user.wallet)}}


def _notification_title(body: AdminNotify) -> str:
    title = (body.title or "").strip()
    if not title:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title is required")
    return title


def _notify_users(db: Session, users, title: str, message: Optional[str]) -> list:
    results = []
    for user in users:
        notif = create_notification(
            db,
            user_id=user.id,
            type="admin",
            title=title,
            message=message or "",
            commit=False,
        )
        results.append((user, notif))
    return results


@router.post("/notifyAll")
async def notify_all_users(
    body: AdminNotify,
    request: Request,
    admin: Admin = Depends(require_admin_or_super_admin),
    db: Session = Depends(get_db)
):
    """Send the same notification to every user"""
    title = _notification_title(body)
    sent = _notify_users(db, db.query(User).all(), title, body.body)

    log_admin_activity(
        db=db,
        admin_id=admin.id,
        action="notification_broadcast",
        entity_type="notification",
        details={"title": title, "count": len(sent)},
        request=request,
        commit=False,
    )
    db.commit()

    logger.info("Admin %s sent '%s' to all %d users", admin.email, title, len(sent))
    return {
        "success": True,
        "message": "Notification sent to all users",
        "count": len(sent),
        "results": [{"userId": u.id, "notificationId": n.id} for u, n in sent],
    }


@router.post("/notify-multiple")
async def notify_selected_users(
    body: AdminNotifyMultiple,
    request: Request,
    admin: Admin = Depends(require_admin_or_super_admin),
    db: Session = Depends(get_db)
):
    """Send a notification to the listed user ids; unknown ids are skipped"""
    if not body.ids:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No user ids provided")
    title = _notification_title(body)

    users = db.query(User).filter(User.id.in_(set(body.ids))).all()
    sent = _notify_users(db, users, title, body.body)

    log_admin_activity(
        db=db,
        admin_id=admin.id,
        action="notification_sent",
        entity_type="notification",
        details={"title": title, "userIds": [u.id for u, _ in sent]},
        request=request,
        commit=False,
    )
    db.commit()

    return {
        "success": True,
        "message": "Notifications sent to selected users",
        "count": len(sent),
        "results": [{"userId": u.id, "notificationId": n.id} for u, n in sent],
    }


@router.post("/{user_id}/notify")
async def notify_user(
    user_id: str,
    body: AdminNotify,
    request: Request,
    admin: Admin = Depends(require_admin_or_super_admin),
    db: Session = Depends(get_db)
):
    """Send a notification to one user"""
    title = _notification_title(body)
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    notif = create_notification(db, user_id=user.id, type="admin", title=title, message=body.body or "", commit=False)
    log_admin_activity(
        db=db,
        admin_id=admin.id,
        action="notification_sent",
        entity_type="user",
        entity_id=user.id,
        details={"title": title},
        request=request,
        commit=False,
    )
    db.commit()
    db.refresh(notif)

    return {"success": True, "message": "Notification sent to user", "notification": notification_to_item(notif)}


@router.delete("/{user_id}/notifications/{notification_id}")
async def delete_user_notification(
    user_id: str,
    notification_id: str,
    request: Request,
    admin: Admin = Depends(require_admin_or_super_admin),
    db: Session = Depends(get_db)
):
    """Remove one notification from a user's inbox"""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    notif = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user.id
    ).first()
    if not notif:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")

    db.delete(notif)
    log_admin_activity(
        db=db,
        admin_id=admin.id,
        action="notification_deleted",
        entity_type="user",
        entity_id=user.id,
        details={"notificationId": notification_id},
        request=request,
        commit=False,
    )
    db.commit()
    return {"success": True, "message": "Notification removed from user"}


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    request: Request,
    admin: Admin = Depends(require_admin_or_super_admin),
    db: Session = Depends(get_db)
):
    """
    Delete a user together with their account details, notifications, ledger,
    payout requests and payment orders. Other users' rows that point at them
    (referrals, transfer counterparties) keep their snapshot fields and lose the link.
    """
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    db.query(Referral).filter(Referral.referrer_id == user.id).update(
        {Referral.referrer_id: None}, synchronize_session=False
    )
    db.query(Referral).filter(Referral.referred_id == user.id).update(
        {Referral.referred_id: None}, synchronize_session=False
    )
    db.query(WalletTransfer).filter(WalletTransfer.counterparty_id == user.id).update(
        {WalletTransfer.counterparty_id: None}, synchronize_session=False
    )

    unique_id = user.unique_id
    previous = round_money(user.wallet or 0)
    db.delete(user)
    log_admin_activity(
        db=db,
        admin_id=admin.id,
        action="user_deleted",
        entity_type="user",
        entity_id=user_id,
        details={"uniqueId": unique_id, "wallet": str(previous)},
        request=request,
        commit=False,
    )
    db.commit()

    logger.info("Admin %s deleted user %s (wallet %s)", admin.email, unique_id, previous)
    return {"success": True, "message": "User deleted"}
