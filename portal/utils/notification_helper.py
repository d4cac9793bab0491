"""
Helper to create in-app notifications for wallet, payout and referral events.
"""
from sqlalchemy.orm import Session
from portal.models.notification import Notification


def create_notification(
    db: Session,
    user_id: str,
    type: str,
    title: str,
    message: str,
    data: dict | None = None,
    commit: bool = True,
) -> Notification:
    """
    Create a notification for a user.
    type: e.g. "transfer", "bank_transfer", "referral", "payment".
    commit=False only adds it to the session so the caller's transaction
    decides whether it is written together with the balance change.
    """
    notif = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        data=data or {},
    )
    db.add(notif)
    if commit:
        db.commit()
        db.refresh(notif)
    return notif


def notification_to_item(n: Notification) -> dict:
    """Shape one notification for API: id, type, title, message, read, created_at, data."""
    return {
        "id": str(n.id),
        "type": n.type,
        "title": n.title,
        "message": n.message or "",
        "read": n.is_read,
        "created_at": n.created_at.isoformat() if n.created_at else None,
        "data": n.data if n.data is not None else {},
    }
