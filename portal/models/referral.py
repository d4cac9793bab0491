from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
import uuid
import enum
from datetime import datetime
from portal.database import Base


class ReferralStatus(str, enum.Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"


class Referral(Base):
    """Lead referred by an existing account; earns the referrer `amount` once an admin activates it."""
    __tablename__ = "referrals"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    referrer_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    # Kept as a fallback when the lead was created before the referrer id could be resolved
    referrer_unique_id = Column(String(5), nullable=True, index=True)
    referred_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    referred_unique_id = Column(String(5), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    amount = Column(Numeric(12, 2), default=0, nullable=False)
    status = Column(String(20), default=ReferralStatus.INACTIVE.value, nullable=False, index=True)
    admin_notes = Column(Text, default="", nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    activated_at = Column(DateTime, nullable=True)

    referrer = relationship("User", foreign_keys=[referrer_id])
    referred = relationship("User", foreign_keys=[referred_id])
