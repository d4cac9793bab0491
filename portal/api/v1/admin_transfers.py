"""
Admin Bank Transfer Request Endpoints
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from portal.database import get_db
from portal.models.admin import Admin
from portal.models.bank_transfer_request import BankTransferRequest
from portal.schemas.transfer import BankTransferDecision
from portal.api.admin_deps import get_current_admin, require_admin_or_super_admin
from portal.services.bank_transfer_service import bank_request_to_item, process_bank_transfer_request
from portal.utils.pagination import page_offset, paginate

router = APIRouter()


@router.get("")
async def list_transfer_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    status: Optional[str] = Query(None, description="pending | approved | rejected"),
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """List bank transfer requests, newest first"""
    query = db.query(BankTransferRequest)
    if status:
        query = query.filter(BankTransferRequest.status == status)

    total = query.count()
    requests = (
        query.order_by(BankTransferRequest.created_at.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
        .all()
    )
    return {
        "success": True,
        "requests": [bank_request_to_item(r) for r in requests],
        "pagination": paginate(page, limit, total),
    }


@router.put("/{request_id}")
async def decide_transfer_request(
    request_id: str,
    body: BankTransferDecision,
    request: Request,
    admin: Admin = Depends(require_admin_or_super_admin),
    db: Session = Depends(get_db)
):
    """Approve or reject a pending request. A decided request cannot be changed."""
    transfer_request = process_bank_transfer_request(db, request_id, body.status, admin, request)
    return {
        "success": True,
        "message": f"Request {transfer_request.status}",
        "request": bank_request_to_item(transfer_request),
    }
