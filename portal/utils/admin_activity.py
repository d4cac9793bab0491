"""
Admin Activity Logging Utility
"""
from typing import Optional, Dict, Any
from sqlalchemy.orm import Session
from fastapi import Request
from portal.models.admin_activity_log import AdminActivityLog


def log_admin_activity(
    db: Session,
    admin_id: Optional[str],
    action: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
    commit: bool = True,
):
    """
    Log admin activity to the database

    Args:
        db: Database session
        admin_id: ID of the admin performing the action
        action: Action name (e.g., 'bank_transfer_processed', 'referral_updated')
        entity_type: Type of entity (e.g., 'bank_transfer_request', 'referral', 'user')
        entity_id: ID of the entity being acted upon
        details: Additional details as JSON
        request: FastAPI request object to extract IP and user agent
        commit: False to leave the entry in the caller's open transaction
    """
    ip_address = None
    user_agent = None

    if request:
        if request.client:
            ip_address = request.client.host
        user_agent = request.headers.get("user-agent")

    activity_log = AdminActivityLog(
        admin_id=str(admin_id) if admin_id else None,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id else None,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent
    )

    db.add(activity_log)
    if commit:
        db.commit()
    return activity_log
