from portal.models.user import User, AccountDetails
from portal.models.notification import Notification
from portal.models.wallet import WalletTransfer
from portal.models.bank_transfer_request import BankTransferRequest
from portal.models.referral import Referral
from portal.models.payment_order import PaymentOrder
from portal.models.settings import Settings
from portal.models.admin import Admin
from portal.models.admin_activity_log import AdminActivityLog

__all__ = [
    "User",
    "AccountDetails",
    "Notification",
    "WalletTransfer",
    "BankTransferRequest",
    "Referral",
    "PaymentOrder",
    "Settings",
    "Admin",
    "AdminActivityLog"
]
