from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
import uuid
import enum
from datetime import datetime
from portal.database import Base


class BankTransferStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class BankTransferRequest(Base):
    """User-initiated payout to a bank account, decided once by an admin."""
    __tablename__ = "bank_transfer_requests"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user_name = Column(String(255), nullable=True)
    user_unique_id = Column(String(5), nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    fee = Column(Numeric(12, 2), nullable=False)  # 5% cut
    net_amount = Column(Numeric(12, 2), nullable=False)
    account_snapshot = Column(JSON, nullable=False)  # bank details frozen at request time
    status = Column(String(20), default=BankTransferStatus.PENDING.value, nullable=False, index=True)
    processed_by = Column(String(36), ForeignKey("admins.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    processed_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="bank_transfer_requests")

    @property
    def is_processed(self) -> bool:
        return self.status != BankTransferStatus.PENDING.value
