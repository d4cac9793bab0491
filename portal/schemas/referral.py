from pydantic import BaseModel, field_validator
from typing import Optional, Any


class ReferralRegister(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    referrerUniqueId: Optional[str] = None

    @field_validator("referrerUniqueId", mode="before")
    @classmethod
    def coerce_unique_id(cls, v):
        # Forms often send the 5-digit id as a number
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class ReferralUpdate(BaseModel):
    status: Optional[str] = None
    amount: Optional[Any] = None
    adminNotes: Optional[str] = None
