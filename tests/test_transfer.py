from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from fastapi import HTTPException
from sqlalchemy import text

from portal.models.notification import Notification
from portal.models.user import User
from portal.models.wallet import WalletTransfer
from portal.services import wallet_service
from portal.services.settings_service import MIN_TRANSFER_AMOUNT, update_setting
from portal.services.wallet_service import HISTORY_LIMIT, calculate_transfer_fee, transfer_funds


def _balance(db, user_id):
    db.expire_all()
    return db.query(User).filter(User.id == user_id).one().wallet


def test_fee_is_two_percent_rounded():
    totals = calculate_transfer_fee(Decimal("100"))
    assert totals["fee"] == Decimal("2.00")
    assert totals["total_debit"] == Decimal("102.00")

    totals = calculate_transfer_fee(Decimal("123.45"))
    assert totals["fee"] == Decimal("2.47")  # 2.469 rounds half-up
    assert totals["total_debit"] == Decimal("125.92")


def test_transfer_moves_amount_and_charges_fee(client, db, make_user, auth_headers):
    sender = make_user(wallet="1000", name="Asha")
    recipient = make_user(wallet="1000", unique_id="54321", name="Ravi")

    resp = client.post(
        "/api/transfer",
        json={"toUniqueId": "54321", "amount": 100, "message": "rent"},
        headers=auth_headers(sender),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Transfer successful"
    assert body["fee"] == 2.0
    assert body["totalDebit"] == 102.0
    assert body["from"] == {"id": sender.id, "wallet": 898.0}
    assert body["to"] == {"id": recipient.id, "wallet": 1100.0}

    assert _balance(db, sender.id) == Decimal("898.00")
    assert _balance(db, recipient.id) == Decimal("1100.00")

    entries = db.query(WalletTransfer).all()
    assert len(entries) == 2
    sent = next(e for e in entries if e.user_id == sender.id)
    received = next(e for e in entries if e.user_id == recipient.id)
    assert sent.transfer_ref == received.transfer_ref
    assert sent.type == "sent" and received.type == "received"
    assert sent.fee == Decimal("2.00") and received.fee == Decimal("0.00")
    assert sent.counterparty_unique_id == "54321"
    assert received.counterparty_name == "Asha"
    assert sent.message == "rent"

    assert db.query(Notification).filter(Notification.user_id == sender.id).count() == 1
    received_note = db.query(Notification).filter(Notification.user_id == recipient.id).one()
    assert "Asha" in received_note.message


def test_transfer_accepts_numeric_string_amount(client, db, make_user, auth_headers):
    sender = make_user(wallet="500")
    make_user(unique_id="22222")

    resp = client.post(
        "/api/transfer",
        json={"toUniqueId": "22222", "amount": "150.50"},
        headers=auth_headers(sender),
    )

    assert resp.status_code == 200
    assert resp.json()["fee"] == 3.01
    assert _balance(db, sender.id) == Decimal("346.49")


@pytest.mark.parametrize("to_unique_id", ["1234", "123456", 12345, None])
def test_rejects_malformed_recipient_id(client, make_user, auth_headers, to_unique_id):
    sender = make_user(wallet="1000")
    resp = client.post(
        "/api/transfer",
        json={"toUniqueId": to_unique_id, "amount": 100},
        headers=auth_headers(sender),
    )
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Invalid recipient id"}


@pytest.mark.parametrize("amount", [0, -5, "abc", None, True, "NaN", 1e30, "1e40", 10_000_000_000])
def test_rejects_invalid_amount(client, make_user, auth_headers, amount):
    sender = make_user(wallet="1000")
    make_user(unique_id="54321")
    resp = client.post(
        "/api/transfer",
        json={"toUniqueId": "54321", "amount": amount},
        headers=auth_headers(sender),
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid amount"


def test_enforces_default_minimum(client, db, make_user, auth_headers):
    sender = make_user(wallet="1000")
    make_user(unique_id="54321")

    resp = client.post(
        "/api/transfer",
        json={"toUniqueId": "54321", "amount": 99.99},
        headers=auth_headers(sender),
    )

    assert resp.status_code == 400
    assert resp.json()["message"] == "Minimum transfer amount is 100"
    assert _balance(db, sender.id) == Decimal("1000.00")


def test_minimum_follows_setting(client, make_user, auth_headers, db):
    update_setting(db, MIN_TRANSFER_AMOUNT, 10)
    sender = make_user(wallet="100")
    make_user(unique_id="54321")

    resp = client.post(
        "/api/transfer",
        json={"toUniqueId": "54321", "amount": 9},
        headers=auth_headers(sender),
    )
    assert resp.json()["message"] == "Minimum transfer amount is 10"

    resp = client.post(
        "/api/transfer",
        json={"toUniqueId": "54321", "amount": 10},
        headers=auth_headers(sender),
    )
    assert resp.status_code == 200


def test_unknown_recipient(client, make_user, auth_headers):
    sender = make_user(wallet="1000")
    resp = client.post(
        "/api/transfer",
        json={"toUniqueId": "99999", "amount": 100},
        headers=auth_headers(sender),
    )
    assert resp.status_code == 404
    assert resp.json()["message"] == "Recipient ID not found"


def test_cannot_transfer_to_self(client, make_user, auth_headers):
    sender = make_user(wallet="1000", unique_id="11111")
    resp = client.post(
        "/api/transfer",
        json={"toUniqueId": "11111", "amount": 100},
        headers=auth_headers(sender),
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cannot transfer to yourself"


def test_insufficient_balance_counts_the_fee(client, db, make_user, auth_headers):
    sender = make_user(wallet="101")
    recipient = make_user(unique_id="54321", wallet="0")

    resp = client.post(
        "/api/transfer",
        json={"toUniqueId": "54321", "amount": 100},
        headers=auth_headers(sender),
    )

    assert resp.status_code == 400
    assert resp.json()["message"] == "Insufficient wallet balance"
    assert _balance(db, sender.id) == Decimal("101.00")
    assert _balance(db, recipient.id) == Decimal("0.00")
    assert db.query(WalletTransfer).count() == 0


def test_exact_balance_is_enough(client, db, make_user, auth_headers):
    sender = make_user(wallet="102")
    make_user(unique_id="54321")

    resp = client.post(
        "/api/transfer",
        json={"toUniqueId": "54321", "amount": 100},
        headers=auth_headers(sender),
    )

    assert resp.status_code == 200
    assert _balance(db, sender.id) == Decimal("0.00")


def test_requires_authentication(client):
    resp = client.post("/api/transfer", json={"toUniqueId": "54321", "amount": 100})
    assert resp.status_code == 401
    assert resp.json()["success"] is False


def test_failure_before_commit_leaves_no_trace(db, make_user):
    sender = make_user(wallet="1000")
    recipient = make_user(unique_id="54321", wallet="0")

    with patch.object(wallet_service, "create_notification", side_effect=RuntimeError("boom")):
        with pytest.raises(RuntimeError):
            transfer_funds(db, sender.id, "54321", 100)
    db.rollback()

    assert _balance(db, sender.id) == Decimal("1000.00")
    assert _balance(db, recipient.id) == Decimal("0.00")
    assert db.query(WalletTransfer).count() == 0
    assert db.query(Notification).count() == 0


def test_concurrent_wallet_change_is_a_conflict(db, make_user):
    sender = make_user(wallet="1000")
    recipient = make_user(unique_id="54321", wallet="0")
    real_lock_users = wallet_service.lock_users

    def lock_then_race(session, ids):
        locked = real_lock_users(session, ids)
        # Another writer bumps the sender's row after it was read
        session.execute(
            text("UPDATE users SET version_id = version_id + 1 WHERE id = :id"),
            {"id": sender.id},
        )
        return locked

    with patch.object(wallet_service, "lock_users", side_effect=lock_then_race):
        with pytest.raises(HTTPException) as exc_info:
            transfer_funds(db, sender.id, "54321", 100)

    assert exc_info.value.status_code == 409
    assert _balance(db, sender.id) == Decimal("1000.00")
    assert _balance(db, recipient.id) == Decimal("0.00")
    assert db.query(WalletTransfer).count() == 0


def test_history_is_newest_first(client, make_user, auth_headers):
    sender = make_user(wallet="1000")
    make_user(unique_id="54321")
    make_user(unique_id="65432")

    client.post("/api/transfer", json={"toUniqueId": "54321", "amount": 100}, headers=auth_headers(sender))
    client.post("/api/transfer", json={"toUniqueId": "65432", "amount": 200}, headers=auth_headers(sender))

    resp = client.get("/api/transfer/history", headers=auth_headers(sender))

    assert resp.status_code == 200
    transfers = resp.json()["transfers"]
    assert [t["counterpartyUniqueId"] for t in transfers] == ["65432", "54321"]
    assert transfers[0]["type"] == "sent"
    assert transfers[0]["fee"] == 4.0


def test_history_returns_only_the_latest_fifty(client, db, make_user, auth_headers):
    user = make_user(wallet="0")
    start = datetime(2026, 1, 1, 9, 0, 0)
    for i in range(HISTORY_LIMIT + 5):
        db.add(WalletTransfer(
            user_id=user.id,
            transfer_ref=f"ref-{i}",
            type="received",
            amount=Decimal("1"),
            fee=Decimal("0"),
            counterparty_unique_id="54321",
            message=f"m{i}",
            created_at=start + timedelta(minutes=i),
        ))
    db.commit()

    transfers = client.get("/api/transfer/history", headers=auth_headers(user)).json()["transfers"]

    assert len(transfers) == 50
    assert transfers[0]["message"] == "m54"
    assert transfers[-1]["message"] == "m5"
    stamps = [t["createdAt"] for t in transfers]
    assert stamps == sorted(stamps, reverse=True)
