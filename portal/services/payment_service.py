"""
WatchPay wallet recharge: order creation and asynchronous settlement.

An order is stored as PENDING before the gateway is contacted. Only the
signed callback moves it to PAID (crediting the wallet in the same
transaction) or FAILED. PAID and FAILED are terminal, so duplicate
callbacks are no-ops.
"""
import json
import logging
import random
import string
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

import requests
from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.config import settings
from portal.models.payment_order import PaymentOrder, PaymentOrderStatus
from portal.models.user import User
from portal.services.wallet_service import lock_users
from portal.utils.money import parse_amount, round_money, to_float
from portal.utils.notification_helper import create_notification
from portal.utils import watchpay

logger = logging.getLogger(__name__)

CALLBACK_ACK = "success"
TRADE_SUCCESS = "1"


class CallbackRejected(Exception):
    """Callback that must be answered with a non-200 plain-text reply."""

    def __init__(self, status_code: int, text: str):
        super().__init__(text)
        self.status_code = status_code
        self.text = text


def generate_mch_order_no() -> str:
    """Generate unique merchant order number"""
    timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
    random_str = ''.join(random.choices(string.ascii_uppercase + string.digits, k=6))
    return f"ORD{timestamp}{random_str}"


def format_order_date(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S")


def format_trade_amount(amount: Decimal) -> str:
    """Gateway wants plain numbers: 100, 100.5"""
    return format(amount.normalize(), "f")


def resolve_recharge_amount(
    user: User,
    amount: Any = None,
    amount_needed: Any = None,
    required: Any = None,
) -> Decimal:
    """amount, else amountNeeded, else whatever is missing from the wallet to reach `required`."""
    resolved = parse_amount(amount)
    if not resolved:
        resolved = parse_amount(amount_needed)
    if not resolved:
        required_total = parse_amount(required)
        if required_total:
            resolved = max(Decimal("0"), required_total - round_money(user.wallet or 0))
    if not resolved or round_money(resolved) <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid amount")
    return round_money(resolved)


def _gateway_configured() -> bool:
    return bool(
        settings.WATCHPAY_MERCHANT_ID
        and settings.WATCHPAY_KEY
        and settings.WATCHPAY_API_DOMAIN
        and settings.WATCHPAY_NOTIFY_URL
    )


def create_watchpay_order(db: Session, user: User, amount: Decimal) -> dict:
    if not _gateway_configured():
        logger.error("WatchPay is not configured (merchant id, key, domain or notify url missing)")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payment gateway is not configured"
        )

    order = PaymentOrder(
        mch_order_no=generate_mch_order_no(),
        user_id=user.id,
        amount=amount,
        status=PaymentOrderStatus.PENDING.value,
        resp_data={},
    )
    db.add(order)
    db.commit()
    db.refresh(order)

    params = {
        "version": settings.WATCHPAY_VERSION,
        "goods_name": settings.WATCHPAY_GOODS_NAME,
        "mch_id": settings.WATCHPAY_MERCHANT_ID,
        "mch_order_no": order.mch_order_no,
        "notify_url": settings.WATCHPAY_NOTIFY_URL,
        "order_date": format_order_date(datetime.now()),
        "pay_type": settings.WATCHPAY_PAY_TYPE,
        "trade_amount": format_trade_amount(amount),
    }
    sign = watchpay.sign_payment(params, settings.WATCHPAY_KEY)

    # The gateway expects the raw (not url-encoded) form body
    raw_body = (
        f"goods_name={params['goods_name']}"
        f"&mch_id={params['mch_id']}"
        f"&mch_order_no={params['mch_order_no']}"
        f"&notify_url={params['notify_url']}"
        f"&order_date={params['order_date']}"
        f"&pay_type={params['pay_type']}"
        f"&trade_amount={params['trade_amount']}"
        f"&version={params['version']}"
        f"&sign_type=MD5"
        f"&sign={sign}"
    )
    gateway_url = f"{settings.WATCHPAY_API_DOMAIN.rstrip('/')}/pay/web"

    try:
        response = requests.post(
            gateway_url,
            data=raw_body.encode("utf-8"),
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "User-Agent": "Mozilla/5.0",
            },
            timeout=settings.WATCHPAY_TIMEOUT_SECONDS,
        )
        text = response.text
    except requests.RequestException as e:
        logger.error("WatchPay create failed for %s: %s", order.mch_order_no, e)
        order.resp_data = {"error": str(e)}
        db.commit()
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Payment gateway unavailable"
        )

    try:
        parsed = json.loads(text)
    except ValueError:
        parsed = None

    # Status only changes through the callback
    order.resp_data = parsed if isinstance(parsed, dict) else {"raw": text}
    db.commit()

    logger.info("WatchPay order %s created for %s amount=%s", order.mch_order_no, user.unique_id, amount)

    if isinstance(parsed, dict) and parsed.get("respCode") == "SUCCESS":
        return {
            "ok": True,
            "payInfo": parsed.get("payInfo"),
            "orderId": order.id,
            "mchOrderNo": order.mch_order_no,
            "raw": parsed,
        }
    return {"ok": True, "html": text, "orderId": order.id, "mchOrderNo": order.mch_order_no}


def _settled_amount(params: Dict[str, Any], order: PaymentOrder) -> Decimal:
    settled = parse_amount(params.get("oriAmount") or params.get("tradeAmount"))
    if not settled or settled <= 0:
        settled = order.amount
    return round_money(settled)


def handle_watchpay_callback(db: Session, params: Dict[str, Any]) -> str:
    if not settings.WATCHPAY_KEY:
        logger.error("WatchPay callback for %s received but WATCHPAY_KEY is not set", params.get("mchOrderNo"))
        raise CallbackRejected(status.HTTP_503_SERVICE_UNAVAILABLE, "Payment gateway is not configured")

    if not watchpay.verify_callback_signature(params, settings.WATCHPAY_KEY):
        logger.warning("WatchPay callback signature mismatch for %s", params.get("mchOrderNo"))
        raise CallbackRejected(status.HTTP_400_BAD_REQUEST, "Signature error")

    mch_order_no = params.get("mchOrderNo") or params.get("mch_order_no")
    order = db.query(PaymentOrder).filter(PaymentOrder.mch_order_no == mch_order_no).first()
    if not order:
        raise CallbackRejected(status.HTTP_404_NOT_FOUND, "Order not found")

    if order.is_final:
        logger.info("WatchPay callback for settled order %s (%s) ignored", order.mch_order_no, order.status)
        return CALLBACK_ACK

    trade_result = str(params.get("tradeResult") or "0")
    payload = dict(params)

    if trade_result != TRADE_SUCCESS:
        claimed = (
            db.query(PaymentOrder)
            .filter(PaymentOrder.id == order.id, PaymentOrder.status == PaymentOrderStatus.PENDING.value)
            .update(
                {
                    PaymentOrder.status: PaymentOrderStatus.FAILED.value,
                    PaymentOrder.resp_data: payload,
                    PaymentOrder.updated_at: datetime.utcnow(),
                },
                synchronize_session=False,
            )
        )
        db.commit()
        if claimed:
            logger.info("WatchPay order %s failed (tradeResult=%s)", order.mch_order_no, trade_result)
        return CALLBACK_ACK

    settled = _settled_amount(params, order)
    try:
        # Compare-and-set: only one delivery can move the order out of PENDING
        claimed = (
            db.query(PaymentOrder)
            .filter(PaymentOrder.id == order.id, PaymentOrder.status == PaymentOrderStatus.PENDING.value)
            .update(
                {
                    PaymentOrder.status: PaymentOrderStatus.PAID.value,
                    PaymentOrder.gateway_order_no: params.get("orderNo") or None,
                    PaymentOrder.resp_data: payload,
                    PaymentOrder.updated_at: datetime.utcnow(),
                },
                synchronize_session=False,
            )
        )
        if not claimed:
            db.rollback()
            return CALLBACK_ACK

        user = lock_users(db, [order.user_id]).get(order.user_id)
        if user is None:
            db.rollback()
            logger.error("WatchPay order %s belongs to missing user %s", order.mch_order_no, order.user_id)
            raise CallbackRejected(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server error")

        user.wallet = round_money((user.wallet or 0) + settled)
        create_notification(
            db,
            user_id=user.id,
            type="payment",
            title="Wallet recharged",
            message=f"₹{settled} has been added to your wallet.",
            data={"order_no": order.mch_order_no, "amount": str(settled)},
            commit=False,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error("WatchPay callback processing failed for %s", order.mch_order_no, exc_info=True)
        raise CallbackRejected(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server error")

    logger.info("WatchPay order %s paid, credited %s to %s", order.mch_order_no, settled, user.unique_id)
    return CALLBACK_ACK


def order_to_item(order: PaymentOrder) -> dict:
    return {
        "id": order.id,
        "mchOrderNo": order.mch_order_no,
        "userId": order.user_id,
        "amount": to_float(order.amount),
        "status": order.status,
        "gatewayOrderNo": order.gateway_order_no,
        "respData": order.resp_data or {},
        "createdAt": order.created_at.isoformat() if order.created_at else None,
        "updatedAt": order.updated_at.isoformat() if order.updated_at else None,
    }


def get_order(db: Session, order_id: str) -> Optional[PaymentOrder]:
    """Look an order up by id or merchant order number."""
    return (
        db.query(PaymentOrder)
        .filter((PaymentOrder.id == order_id) | (PaymentOrder.mch_order_no == order_id))
        .first()
    )
