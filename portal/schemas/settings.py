"""
Settings Schemas
"""
from pydantic import BaseModel
from typing import Optional, Any


class SettingsUpdate(BaseModel):
    """
    PUT /admin/settings. Only keys present in the body are touched;
    examStartAt and homeHeroImageUrl are cleared by null or "".
    """
    minTransferAmount: Optional[Any] = None
    minBankTransfer: Optional[Any] = None
    examStartAt: Optional[Any] = None
    homeHeroImageUrl: Optional[Any] = None


class PublicSettings(BaseModel):
    minTransferAmount: Optional[float] = None
    minBankTransfer: Optional[float] = None
    examStartAt: Optional[str] = None
    homeHeroImageUrl: Optional[str] = None
