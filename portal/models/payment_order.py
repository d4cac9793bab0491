from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
import uuid
import enum
from datetime import datetime
from portal.database import Base


class PaymentOrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class PaymentOrder(Base):
    """Wallet recharge order tracked against the WatchPay gateway."""
    __tablename__ = "payment_orders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    mch_order_no = Column(String(50), unique=True, nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String(20), default=PaymentOrderStatus.PENDING.value, nullable=False, index=True)
    gateway_order_no = Column(String(100), nullable=True)  # platform orderNo from the callback
    resp_data = Column(JSON, nullable=True)  # raw gateway response or callback payload
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="payment_orders")

    @property
    def is_final(self) -> bool:
        return self.status in (PaymentOrderStatus.PAID.value, PaymentOrderStatus.FAILED.value)
