from pydantic import BaseModel
from typing import Optional, Any


class WatchPayCreate(BaseModel):
    """
    Recharge request. The client may send the exact amount, the shortfall
    (amountNeeded), or the total it needs to spend (required).
    """
    amount: Optional[Any] = None
    amountNeeded: Optional[Any] = None
    required: Optional[Any] = None
