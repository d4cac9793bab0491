"""
WatchPay request/callback signing.

The gateway signs `k=v&k=v...&key=<merchant key>` encoded as GBK with MD5.
This is the gateway's own interoperability scheme, not an integrity
mechanism, and field order is fixed by the gateway.
"""
import hashlib
import hmac
from typing import Any, Dict, Optional

# bank_code, mch_return_msg and page_url are optional and skipped when empty
PAYMENT_SIGN_FIELDS = (
    ("bank_code", False),
    ("goods_name", True),
    ("mch_id", True),
    ("mch_order_no", True),
    ("mch_return_msg", False),
    ("notify_url", True),
    ("order_date", True),
    ("page_url", False),
    ("pay_type", True),
    ("trade_amount", True),
    ("version", True),
)

CALLBACK_SIGN_FIELDS = (
    "amount",
    "mchId",
    "mchOrderNo",
    "merRetMsg",
    "orderDate",
    "orderNo",
    "oriAmount",
    "tradeResult",
)


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def build_payment_sign_string(params: Dict[str, Any]) -> str:
    """Sign source for an outbound payment request. sign_type and sign are never part of it."""
    parts = []
    for key, required in PAYMENT_SIGN_FIELDS:
        value = params.get(key)
        if not required and _is_empty(value):
            continue
        parts.append(f"{key}={'' if value is None else value}")
    return "&".join(parts)


def build_callback_sign_string(params: Dict[str, Any]) -> str:
    """Sign source for an asynchronous callback; empty fields are skipped."""
    parts = []
    for key in CALLBACK_SIGN_FIELDS:
        value = params.get(key)
        if not _is_empty(value):
            parts.append(f"{key}={value}")
    return "&".join(parts)


def md5_gbk_hex(source: str, key: Optional[str]) -> str:
    with_key = f"{source}&key={key}" if key else source
    return hashlib.md5(with_key.encode("gbk", errors="replace")).hexdigest()


def sign_payment(params: Dict[str, Any], key: str) -> str:
    return md5_gbk_hex(build_payment_sign_string(params), key)


def verify_callback_signature(params: Dict[str, Any], key: str) -> bool:
    expected = md5_gbk_hex(build_callback_sign_string(params), key)
    incoming = str(params.get("sign") or "").lower()
    return hmac.compare_digest(expected, incoming)
