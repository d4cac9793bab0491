import hashlib

from portal.utils import watchpay

PAYMENT_PARAMS = {
    "version": "1.0",
    "goods_name": "Wallet Recharge",
    "mch_id": "100200",
    "mch_order_no": "ORD20260101100000ABC123",
    "notify_url": "https://portal.example/api/payment/watchpay/callback",
    "order_date": "2026-01-01 10:00:00",
    "pay_type": "101",
    "trade_amount": "100",
    "sign_type": "MD5",
}


def test_payment_sign_string_uses_gateway_field_order():
    assert watchpay.build_payment_sign_string(PAYMENT_PARAMS) == (
        "goods_name=Wallet Recharge"
        "&mch_id=100200"
        "&mch_order_no=ORD20260101100000ABC123"
        "&notify_url=https://portal.example/api/payment/watchpay/callback"
        "&order_date=2026-01-01 10:00:00"
        "&pay_type=101"
        "&trade_amount=100"
        "&version=1.0"
    )


def test_optional_payment_fields_only_when_present():
    params = dict(PAYMENT_PARAMS, bank_code="ICICI", page_url="", mch_return_msg="note")
    source = watchpay.build_payment_sign_string(params)
    assert source.startswith("bank_code=ICICI&goods_name=")
    assert "&mch_order_no=ORD20260101100000ABC123&mch_return_msg=note&notify_url=" in source
    assert "page_url" not in source
    assert "sign_type" not in source


def test_callback_sign_string_skips_empty_fields():
    params = {
        "tradeResult": "1",
        "mchId": "100200",
        "mchOrderNo": "ORD1",
        "oriAmount": "100.00",
        "amount": "100.00",
        "orderDate": "2026-01-01 10:00:00",
        "orderNo": "WP998877",
        "merRetMsg": "",
        "signType": "MD5",
        "sign": "ignored",
    }
    assert watchpay.build_callback_sign_string(params) == (
        "amount=100.00&mchId=100200&mchOrderNo=ORD1"
        "&orderDate=2026-01-01 10:00:00&orderNo=WP998877&oriAmount=100.00&tradeResult=1"
    )


def test_digest_is_md5_of_gbk_bytes_with_key():
    source = "goods_name=钱包充值&mch_id=100200"
    expected = hashlib.md5(f"{source}&key=SECRET".encode("gbk")).hexdigest()
    assert watchpay.md5_gbk_hex(source, "SECRET") == expected


def test_digest_without_key_has_no_suffix():
    assert watchpay.md5_gbk_hex("a=1", "") == hashlib.md5(b"a=1").hexdigest()


def test_callback_signature_accepts_uppercase_and_rejects_tampering():
    params = {"mchId": "100200", "mchOrderNo": "ORD1", "tradeResult": "1", "amount": "50"}
    params["sign"] = watchpay.md5_gbk_hex(watchpay.build_callback_sign_string(params), "SECRET").upper()

    assert watchpay.verify_callback_signature(params, "SECRET")
    assert not watchpay.verify_callback_signature(dict(params, amount="5000"), "SECRET")
    assert not watchpay.verify_callback_signature(dict(params, sign=""), "SECRET")
