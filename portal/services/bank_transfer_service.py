"""
Bank payout requests: created by the user, decided once by an admin.
No wallet movement happens here; the payout itself is made out of band.
"""
import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import HTTPException, Request, status
from sqlalchemy.orm import Session

from portal.models.admin import Admin
from portal.models.bank_transfer_request import BankTransferRequest, BankTransferStatus
from portal.models.user import User
from portal.services.settings_service import get_min_bank_transfer
from portal.utils.admin_activity import log_admin_activity
from portal.utils.money import (
    BANK_TRANSFER_FEE_RATE, format_setting_number, parse_amount, percent_fee, round_money, to_float,
)
from portal.utils.notification_helper import create_notification

logger = logging.getLogger(__name__)

DECISION_STATUSES = (BankTransferStatus.APPROVED.value, BankTransferStatus.REJECTED.value)


def calculate_payout(amount) -> dict:
    """5% cut, net = amount - fee."""
    amount = round_money(amount)
    fee = percent_fee(amount, BANK_TRANSFER_FEE_RATE)
    return {"amount": amount, "fee": fee, "net": round_money(amount - fee)}


def create_bank_transfer_request(db: Session, user_id: str, amount: Any) -> BankTransferRequest:
    parsed = parse_amount(amount)
    if parsed is None or round_money(parsed) <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid amount")

    min_bank = get_min_bank_transfer(db)
    if parsed < min_bank:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Minimum bank transfer amount is {format_setting_number(min_bank)}"
        )

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if not user.account_details:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No account details on file. Please add account details first."
        )

    payout = calculate_payout(parsed)
    transfer_request = BankTransferRequest(
        user_id=user.id,
        user_name=user.name,
        user_unique_id=user.unique_id,
        amount=payout["amount"],
        fee=payout["fee"],
        net_amount=payout["net"],
        account_snapshot=user.account_details.snapshot(),
        status=BankTransferStatus.PENDING.value,
    )
    db.add(transfer_request)
    db.flush()

    create_notification(
        db,
        user_id=user.id,
        type="bank_transfer",
        title="Bank transfer requested",
        message=(
            f"Your bank transfer request of ₹{payout['amount']} has been submitted and is "
            f"pending admin approval. Fee: ₹{payout['fee']}"
        ),
        data={"request_id": transfer_request.id, "amount": str(payout["amount"])},
        commit=False,
    )
    db.commit()
    db.refresh(transfer_request)

    logger.info(
        "Bank transfer request %s created for %s amount=%s fee=%s",
        transfer_request.id, user.unique_id, payout["amount"], payout["fee"]
    )
    return transfer_request


def process_bank_transfer_request(
    db: Session,
    request_id: str,
    new_status: Optional[str],
    admin: Admin,
    request: Optional[Request] = None,
) -> BankTransferRequest:
    if new_status not in DECISION_STATUSES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid status")

    transfer_request = (
        db.query(BankTransferRequest)
        .filter(BankTransferRequest.id == request_id)
        .with_for_update()
        .first()
    )
    if not transfer_request:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request not found")

    # approved/rejected are terminal
    if transfer_request.is_processed:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request already processed")

    transfer_request.status = new_status
    transfer_request.processed_at = datetime.utcnow()
    transfer_request.processed_by = admin.id

    create_notification(
        db,
        user_id=transfer_request.user_id,
        type="bank_transfer",
        title=f"Bank transfer {new_status}",
        message=f"Your bank transfer request of ₹{round_money(transfer_request.amount)} was {new_status}.",
        data={"request_id": transfer_request.id, "status": new_status},
        commit=False,
    )
    log_admin_activity(
        db=db,
        admin_id=admin.id,
        action="bank_transfer_processed",
        entity_type="bank_transfer_request",
        entity_id=transfer_request.id,
        details={"status": new_status, "amount": str(transfer_request.amount)},
        request=request,
        commit=False,
    )
    db.commit()
    db.refresh(transfer_request)

    logger.info("Bank transfer request %s %s by admin %s", transfer_request.id, new_status, admin.email)
    return transfer_request


def bank_request_to_item(r: BankTransferRequest) -> dict:
    return {
        "id": r.id,
        "userId": r.user_id,
        "userName": r.user_name,
        "userUniqueId": r.user_unique_id,
        "amount": to_float(r.amount),
        "fee": to_float(r.fee),
        "netAmount": to_float(r.net_amount),
        "accountSnapshot": r.account_snapshot or {},
        "status": r.status,
        "createdAt": r.created_at.isoformat() if r.created_at else None,
        "processedAt": r.processed_at.isoformat() if r.processed_at else None,
        "processedBy": r.processed_by,
    }
