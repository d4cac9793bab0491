from pydantic import BaseModel, EmailStr, Field, AliasChoices
from typing import Optional


class UserCreate(BaseModel):
    name: str
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    password: str = Field(..., min_length=6)
    # uniqueId of the referrer when signing up through a referral link
    ref: Optional[str] = Field(default=None, validation_alias=AliasChoices("ref", "referrerUniqueId"))


class UserLogin(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    password: str


class AccountDetailsIn(BaseModel):
    # NOTE: all optional so PUT can patch single fields; POST checks for an existing record
    holderName: Optional[str] = None
    bankName: Optional[str] = None
    accountNumber: Optional[str] = None
    ifsc: Optional[str] = None
    branch: Optional[str] = None
    upiId: Optional[str] = None
