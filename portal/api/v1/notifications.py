from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from portal.database import get_db
from portal.api.deps import get_current_user
from portal.models.notification import Notification
from portal.utils.notification_helper import notification_to_item
from portal.utils.pagination import page_offset, paginate
from typing import Optional

router = APIRouter()


@router.get("")
def get_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    unread: Optional[bool] = None,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get user notifications. Supports ?unread=true for unread-only."""
    query = db.query(Notification).filter(Notification.user_id == current_user.id)
    if unread is not None:
        query = query.filter(Notification.is_read == (not unread))
    total = query.count()
    notifications = (
        query.order_by(Notification.created_at.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
        .all()
    )
    unread_count = db.query(Notification).filter(
        Notification.user_id == current_user.id,
        Notification.is_read == False
    ).count()
    return {
        "success": True,
        "notifications": [notification_to_item(n) for n in notifications],
        "unreadCount": unread_count,
        "pagination": paginate(page, limit, total),
    }


@router.put("/read-all")
def mark_all_read(
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Mark all notifications of the current user as read."""
    db.query(Notification).filter(
        Notification.user_id == current_user.id,
        Notification.is_read == False
    ).update({"is_read": True})
    db.commit()
    return {"success": True, "message": "All notifications marked as read"}


@router.put("/{notification_id}/read")
def mark_notification_read(
    notification_id: str,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db)
):
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == current_user.id
    ).first()
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    notification.is_read = True
    db.commit()
    return {"success": True, "message": "Notification marked as read"}


@router.delete("/{notification_id}")
def delete_notification(
    notification_id: str,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db)
):
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == current_user.id
    ).first()
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    db.delete(notification)
    db.commit()
    return {"success": True, "message": "Notification deleted"}
