from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from portal.database import get_db
from portal.api.deps import get_current_user
from portal.models.user import User
from portal.models.bank_transfer_request import BankTransferRequest
from portal.schemas.transfer import TransferCreate, BankTransferCreate
from portal.services.wallet_service import transfer_funds, get_transfer_history
from portal.services.bank_transfer_service import create_bank_transfer_request, bank_request_to_item
from portal.utils.money import to_float

router = APIRouter()


@router.post("")
def create_transfer(
    body: TransferCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Send money to another user by 5-digit uniqueId. The sender pays a 2% fee."""
    result = transfer_funds(db, current_user.id, body.toUniqueId, body.amount, body.message)
    return {"success": True, **result}


@router.get("/history")
def transfer_history(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return {"success": True, "transfers": get_transfer_history(db, current_user.id)}


@router.post("/bank-request")
def request_bank_transfer(
    body: BankTransferCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Ask an admin to pay `amount` out to the bank details on file (5% fee, no wallet debit)."""
    transfer_request = create_bank_transfer_request(db, current_user.id, body.amount)
    return {
        "success": True,
        "message": "Bank transfer request submitted",
        "requestId": transfer_request.id,
        "amount": to_float(transfer_request.amount),
        "fee": to_float(transfer_request.fee),
        "net": to_float(transfer_request.net_amount),
    }


@router.get("/bank-requests")
def my_bank_requests(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    requests = (
        db.query(BankTransferRequest)
        .filter(BankTransferRequest.user_id == current_user.id)
        .order_by(BankTransferRequest.created_at.desc())
        .all()
    )
    return {"success": True, "requests": [bank_request_to_item(r) for r in requests]}
