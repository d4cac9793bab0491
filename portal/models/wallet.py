from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime
from portal.database import Base


class TransferType:
    SENT = "sent"
    RECEIVED = "received"


class WalletTransfer(Base):
    """Ledger entry for a peer-to-peer transfer. Written in mirrored pairs sharing transfer_ref."""
    __tablename__ = "wallet_transfers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    transfer_ref = Column(String(36), nullable=False, index=True)
    type = Column(String(20), nullable=False)  # 'sent' | 'received'
    amount = Column(Numeric(12, 2), nullable=False)
    fee = Column(Numeric(12, 2), default=0, nullable=False)  # only charged on the 'sent' side
    counterparty_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    counterparty_unique_id = Column(String(5), nullable=True)
    counterparty_name = Column(String(255), nullable=True)
    message = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    user = relationship("User", back_populates="transfers", foreign_keys=[user_id])
