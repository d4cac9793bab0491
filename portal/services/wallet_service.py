"""
Peer-to-peer wallet transfers.

A transfer moves `amount` to the recipient and debits `amount + fee` from
the sender. Both balance changes, both ledger entries and both
notifications are written in a single transaction with both user rows
locked and version-checked.
"""
import logging
import uuid
from datetime import datetime
from typing import Any, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from portal.models.user import User
from portal.models.wallet import WalletTransfer, TransferType
from portal.services.settings_service import get_min_transfer_amount
from portal.utils.money import (
    TRANSFER_FEE_RATE, format_setting_number, parse_amount, percent_fee, round_money, to_float,
)
from portal.utils.notification_helper import create_notification

logger = logging.getLogger(__name__)

UNIQUE_ID_LENGTH = 5
HISTORY_LIMIT = 50


def calculate_transfer_fee(amount) -> dict:
    """2% fee charged to the sender, rounded to 2 places."""
    amount = round_money(amount)
    fee = percent_fee(amount, TRANSFER_FEE_RATE)
    return {"amount": amount, "fee": fee, "total_debit": round_money(amount + fee)}


def lock_users(db: Session, user_ids: List[str]) -> dict:
    """
    SELECT ... FOR UPDATE the given users in id order and refresh them from
    the database. Returns {id: User}.
    """
    rows = (
        db.query(User)
        .filter(User.id.in_(user_ids))
        .order_by(User.id)
        .with_for_update()
        .populate_existing()
        .all()
    )
    return {row.id: row for row in rows}


def commit_wallet_change(db: Session) -> None:
    """Commit a wallet mutation, turning a lost optimistic-lock race into 409."""
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        logger.warning("Concurrent wallet update detected, transaction rolled back")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Wallet was updated by another request. Please retry."
        )


def transfer_funds(
    db: Session,
    sender_id: str,
    to_unique_id: Any,
    amount: Any,
    message: Optional[str] = None,
) -> dict:
    if not isinstance(to_unique_id, str) or len(to_unique_id) != UNIQUE_ID_LENGTH:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid recipient id")

    parsed = parse_amount(amount)
    if parsed is None or round_money(parsed) <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid amount")

    min_transfer = get_min_transfer_amount(db)
    if parsed < min_transfer:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Minimum transfer amount is {format_setting_number(min_transfer)}"
        )

    totals = calculate_transfer_fee(parsed)
    amt, fee, total_debit = totals["amount"], totals["fee"], totals["total_debit"]

    recipient = db.query(User).filter(User.unique_id == to_unique_id).first()
    if not recipient:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recipient ID not found")

    sender = db.query(User).filter(User.id == sender_id).first()
    if not sender:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sender not found")

    if sender.id == recipient.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot transfer to yourself")

    locked = lock_users(db, [sender.id, recipient.id])
    sender, recipient = locked[sender.id], locked[recipient.id]

    if round_money(sender.wallet or 0) < total_debit:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Insufficient wallet balance")

    sender.wallet = round_money((sender.wallet or 0) - total_debit)
    recipient.wallet = round_money((recipient.wallet or 0) + amt)

    transfer_ref = str(uuid.uuid4())
    now = datetime.utcnow()
    note = message or ""

    db.add(WalletTransfer(
        user_id=sender.id,
        transfer_ref=transfer_ref,
        type=TransferType.SENT,
        amount=amt,
        fee=fee,
        counterparty_id=recipient.id,
        counterparty_unique_id=recipient.unique_id,
        counterparty_name=recipient.name,
        message=note,
        created_at=now,
    ))
    db.add(WalletTransfer(
        user_id=recipient.id,
        transfer_ref=transfer_ref,
        type=TransferType.RECEIVED,
        amount=amt,
        fee=0,
        counterparty_id=sender.id,
        counterparty_unique_id=sender.unique_id,
        counterparty_name=sender.name,
        message=note,
        created_at=now,
    ))

    create_notification(
        db,
        user_id=recipient.id,
        type="transfer",
        title="Wallet credited",
        message=f"You received ₹{amt} from {sender.name}.",
        data={"transfer_ref": transfer_ref, "amount": str(amt)},
        commit=False,
    )
    create_notification(
        db,
        user_id=sender.id,
        type="transfer",
        title="Wallet debited",
        message=f"You sent ₹{amt} (fee ₹{fee}). New balance: ₹{sender.wallet}",
        data={"transfer_ref": transfer_ref, "amount": str(amt), "fee": str(fee)},
        commit=False,
    )

    commit_wallet_change(db)
    logger.info(
        "Transfer %s: %s -> %s amount=%s fee=%s",
        transfer_ref, sender.unique_id, recipient.unique_id, amt, fee
    )

    return {
        "message": "Transfer successful",
        "from": {"id": sender.id, "wallet": to_float(sender.wallet)},
        "to": {"id": recipient.id, "wallet": to_float(recipient.wallet)},
        "fee": to_float(fee),
        "totalDebit": to_float(total_debit),
    }


def transfer_to_item(t: WalletTransfer) -> dict:
    return {
        "id": t.id,
        "transferRef": t.transfer_ref,
        "type": t.type,
        "amount": to_float(t.amount),
        "fee": to_float(t.fee),
        "counterpartyId": t.counterparty_id,
        "counterpartyUniqueId": t.counterparty_unique_id,
        "counterpartyName": t.counterparty_name,
        "message": t.message or "",
        "createdAt": t.created_at.isoformat() if t.created_at else None,
    }


def get_transfer_history(db: Session, user_id: str, limit: int = HISTORY_LIMIT) -> List[dict]:
    """Most recent transfers first."""
    rows = (
        db.query(WalletTransfer)
        .filter(WalletTransfer.user_id == user_id)
        .order_by(WalletTransfer.created_at.desc(), WalletTransfer.id.desc())
        .limit(limit)
        .all()
    )
    return [transfer_to_item(t) for t in rows]
