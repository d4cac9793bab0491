from pydantic import BaseModel, EmailStr
from typing import Optional, Any, List
from portal.models.admin import AdminRole


# Admin Authentication Schemas
class AdminLogin(BaseModel):
    email: EmailStr
    password: str


class AdminResponse(BaseModel):
    id: str
    email: str
    name: str
    role: AdminRole

    class Config:
        from_attributes = True


class WalletUpdate(BaseModel):
    """PUT /admin/users/{id}/wallet body."""
    wallet: Optional[Any] = None


class AdminNotify(BaseModel):
    """Body for the admin notify endpoints: a title and an optional message."""
    title: Optional[str] = None
    body: Optional[str] = None


class AdminNotifyMultiple(AdminNotify):
    ids: Optional[List[str]] = None
