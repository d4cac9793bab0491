from decimal import Decimal

import pytest

from portal.models.notification import Notification
from portal.models.referral import Referral
from portal.models.user import User
from portal.services.referral_service import register_referral


def _wallet(db, user_id):
    db.expire_all()
    return db.query(User).filter(User.id == user_id).one().wallet


@pytest.fixture
def referrer(make_user):
    return make_user(wallet="100", unique_id="12345", name="Meera")


@pytest.fixture
def referral(db, referrer):
    return register_referral(db, name="Kiran", email="kiran@mail.com", referrer_unique_id="12345")


@pytest.fixture
def admin_headers(make_admin, admin_auth_headers):
    return admin_auth_headers(make_admin())


def test_public_registration_links_referrer(client, db, referrer):
    resp = client.post(
        "/api/referral/register",
        json={"name": "Kiran", "email": "kiran@mail.com", "referrerUniqueId": 12345},
    )

    assert resp.status_code == 201
    item = resp.json()["referral"]
    assert item["status"] == "inactive"
    assert item["referrerUniqueId"] == "12345"
    assert item["referrer"]["id"] == referrer.id


def test_registration_is_deduplicated_per_referrer(client, db, referrer):
    payload = {"name": "Kiran", "email": "kiran@mail.com", "referrerUniqueId": "12345"}
    client.post("/api/referral/register", json=payload)
    client.post("/api/referral/register", json=payload)
    assert db.query(Referral).count() == 1


def test_registration_requires_name(client):
    resp = client.post("/api/referral/register", json={"email": "x@mail.com"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Name is required"


def test_activation_credits_referrer_once(client, db, referrer, referral, admin_headers):
    url = f"/admin/referrals/{referral.id}"

    resp = client.post(url, json={"status": "active", "amount": 250}, headers=admin_headers)

    assert resp.status_code == 200
    assert resp.json()["referral"]["activatedAt"] is not None
    assert _wallet(db, referrer.id) == Decimal("350.00")
    note = db.query(Notification).filter(Notification.user_id == referrer.id).one()
    assert note.type == "referral"

    # Saving again with the same values is not a second activation
    client.post(url, json={"status": "active", "amount": 250}, headers=admin_headers)
    assert _wallet(db, referrer.id) == Decimal("350.00")


def test_zero_amount_activation_leaves_wallet_alone(client, db, referrer, referral, admin_headers):
    resp = client.post(f"/admin/referrals/{referral.id}", json={"status": "active", "amount": 0}, headers=admin_headers)

    assert resp.status_code == 200
    assert resp.json()["referral"]["status"] == "active"
    assert resp.json()["referral"]["activatedAt"] is not None
    assert _wallet(db, referrer.id) == Decimal("100.00")
    assert db.query(User).filter(User.id == referrer.id).one().version_id == 1
    assert db.query(Notification).count() == 0


def test_amount_change_while_active_credits_the_difference(client, db, referrer, referral, admin_headers):
    url = f"/admin/referrals/{referral.id}"
    client.post(url, json={"status": "active", "amount": 250}, headers=admin_headers)

    client.post(url, json={"amount": 300}, headers=admin_headers)
    assert _wallet(db, referrer.id) == Decimal("400.00")

    client.post(url, json={"amount": 200}, headers=admin_headers)
    assert _wallet(db, referrer.id) == Decimal("300.00")


def test_debit_that_would_overdraw_is_rejected(client, db, referrer, referral, admin_headers):
    url = f"/admin/referrals/{referral.id}"
    client.post(url, json={"status": "active", "amount": 250}, headers=admin_headers)
    db.query(User).filter(User.id == referrer.id).update({User.wallet: Decimal("10.00")})
    db.commit()

    resp = client.post(url, json={"amount": 0}, headers=admin_headers)

    assert resp.status_code == 400
    assert _wallet(db, referrer.id) == Decimal("10.00")
    assert db.query(Referral).one().amount == Decimal("250.00")


def test_deactivation_does_not_claw_back(client, db, referrer, referral, admin_headers):
    url = f"/admin/referrals/{referral.id}"
    client.post(url, json={"status": "active", "amount": 250}, headers=admin_headers)

    resp = client.post(url, json={"status": "inactive", "adminNotes": "duplicate"}, headers=admin_headers)

    assert resp.status_code == 200
    item = resp.json()["referral"]
    assert item["status"] == "inactive"
    assert item["activatedAt"] is None
    assert item["adminNotes"] == "duplicate"
    assert _wallet(db, referrer.id) == Decimal("350.00")

    # Reactivating pays the current amount again
    client.post(url, json={"status": "active"}, headers=admin_headers)
    assert _wallet(db, referrer.id) == Decimal("600.00")


def test_referrer_resolved_by_unique_id_when_id_missing(client, db, referrer, admin_headers):
    lead = Referral(name="Late", referrer_unique_id="12345", amount=Decimal("40"))
    db.add(lead)
    db.commit()

    client.post(f"/admin/referrals/{lead.id}", json={"status": "active"}, headers=admin_headers)

    assert _wallet(db, referrer.id) == Decimal("140.00")
    assert db.query(Referral).filter(Referral.id == lead.id).one().referrer_id == referrer.id


@pytest.mark.parametrize("body, message", [
    ({"status": "paused"}, "Invalid status"),
    ({"amount": -1}, "Invalid amount"),
    ({"amount": "lots"}, "Invalid amount"),
])
def test_rejects_invalid_updates(client, db, referrer, referral, admin_headers, body, message):
    resp = client.post(f"/admin/referrals/{referral.id}", json=body, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == message
    assert _wallet(db, referrer.id) == Decimal("100.00")


def test_unknown_referral(client, admin_headers):
    resp = client.post("/admin/referrals/missing", json={"status": "active"}, headers=admin_headers)
    assert resp.status_code == 404


def test_referrer_sees_own_referrals_and_total(client, referrer, referral, admin_headers, auth_headers):
    client.post(f"/admin/referrals/{referral.id}", json={"status": "active", "amount": 75}, headers=admin_headers)

    resp = client.get("/api/referral/my", headers=auth_headers(referrer))

    body = resp.json()
    assert body["total"] == 75.0
    assert [r["name"] for r in body["referrals"]] == ["Kiran"]


def test_admin_list_attaches_accounts(client, referrer, referral, admin_headers):
    resp = client.get("/admin/referrals", headers=admin_headers)
    items = resp.json()["referrals"]
    assert len(items) == 1
    assert items[0]["referrer"]["uniqueId"] == "12345"
    assert items[0]["referred"] is None


def test_signup_links_pending_lead(client, db, referrer, referral):
    resp = client.post(
        "/api/auth/register",
        json={"name": "Kiran", "email": "kiran@mail.com", "password": "secret123", "ref": "12345"},
    )
    assert resp.status_code == 201

    db.expire_all()
    lead = db.query(Referral).one()
    assert lead.referred_unique_id == resp.json()["user"]["uniqueId"]
