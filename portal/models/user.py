from sqlalchemy import Column, String, Boolean, DateTime, Integer, Numeric, ForeignKey
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime
from portal.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    unique_id = Column(String(5), unique=True, nullable=False, index=True)  # public 5-digit id used for transfers
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=True, index=True)
    phone = Column(String(20), nullable=True, index=True)
    password_hash = Column(String(255), nullable=False)
    wallet = Column(Numeric(12, 2), default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    version_id = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Every flush of a changed user bumps version_id; a stale row raises StaleDataError
    __mapper_args__ = {"version_id_col": version_id}

    # Relationships
    account_details = relationship("AccountDetails", back_populates="user", uselist=False, cascade="all, delete-orphan")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")
    transfers = relationship(
        "WalletTransfer",
        back_populates="user",
        cascade="all, delete-orphan",
        foreign_keys="WalletTransfer.user_id",
        order_by="WalletTransfer.created_at.desc()",
    )
    bank_transfer_requests = relationship("BankTransferRequest", back_populates="user", cascade="all, delete-orphan")
    payment_orders = relationship("PaymentOrder", back_populates="user", cascade="all, delete-orphan")


class AccountDetails(Base):
    """Bank/UPI details for payouts. One row per user, overwritten on update."""
    __tablename__ = "account_details"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    holder_name = Column(String(255), nullable=True)
    bank_name = Column(String(255), nullable=True)
    account_number = Column(String(50), nullable=True)
    ifsc = Column(String(20), nullable=True)
    branch = Column(String(255), nullable=True)
    upi_id = Column(String(100), nullable=True)
    added_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="account_details")

    def snapshot(self) -> dict:
        """Plain copy of the details, detached from this row."""
        return {
            "holderName": self.holder_name,
            "bankName": self.bank_name,
            "accountNumber": self.account_number,
            "ifsc": self.ifsc,
            "branch": self.branch,
            "upiId": self.upi_id,
        }
