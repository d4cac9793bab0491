from pydantic import BaseModel
from typing import Optional, Any


# Money fields stay permissive: amount/recipient rules are enforced in the
# transfer services so malformed input gets a 400 with a readable message
# instead of a 422.

class TransferCreate(BaseModel):
    """POST /transfer body."""
    toUniqueId: Optional[Any] = None
    amount: Optional[Any] = None
    message: Optional[str] = None


class BankTransferCreate(BaseModel):
    """POST /transfer/bank-request body."""
    amount: Optional[Any] = None


class BankTransferDecision(BaseModel):
    """PUT /admin/transfer-requests/{id} body: approved | rejected."""
    status: Optional[str] = None
