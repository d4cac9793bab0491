from decimal import Decimal

import pytest

from portal.models.admin import AdminRole
from portal.models.admin_activity_log import AdminActivityLog
from portal.models.bank_transfer_request import BankTransferRequest
from portal.models.notification import Notification
from portal.models.user import User
from portal.services.bank_transfer_service import create_bank_transfer_request


@pytest.fixture
def pending_request(db, make_user, add_account_details):
    user = make_user(wallet="1500")
    add_account_details(user)
    return create_bank_transfer_request(db, user.id, 1000)


@pytest.mark.parametrize("decision", ["approved", "rejected"])
def test_admin_decides_pending_request(client, db, make_admin, admin_auth_headers, pending_request, decision):
    admin = make_admin()

    resp = client.put(
        f"/admin/transfer-requests/{pending_request.id}",
        json={"status": decision},
        headers=admin_auth_headers(admin),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["request"]["status"] == decision
    assert body["request"]["processedBy"] == admin.id
    assert body["request"]["processedAt"] is not None

    db.expire_all()
    req = db.query(BankTransferRequest).one()
    assert req.status == decision
    # Deciding a payout never touches the wallet
    assert db.query(User).filter(User.id == req.user_id).one().wallet == Decimal("1500.00")

    notes = (
        db.query(Notification)
        .filter(Notification.user_id == req.user_id)
        .order_by(Notification.created_at.desc())
        .all()
    )
    assert len(notes) == 2
    assert decision in notes[0].message
    assert "1000.00" in notes[0].message

    log = db.query(AdminActivityLog).filter(AdminActivityLog.action == "bank_transfer_processed").one()
    assert log.entity_id == req.id


def test_decided_request_cannot_be_processed_again(client, db, make_admin, admin_auth_headers, pending_request):
    headers = admin_auth_headers(make_admin())
    url = f"/admin/transfer-requests/{pending_request.id}"
    assert client.put(url, json={"status": "approved"}, headers=headers).status_code == 200

    resp = client.put(url, json={"status": "rejected"}, headers=headers)

    assert resp.status_code == 400
    assert resp.json()["message"] == "Request already processed"
    db.expire_all()
    assert db.query(BankTransferRequest).one().status == "approved"


@pytest.mark.parametrize("decision", ["pending", "paid", None])
def test_rejects_unknown_status(client, make_admin, admin_auth_headers, pending_request, decision):
    resp = client.put(
        f"/admin/transfer-requests/{pending_request.id}",
        json={"status": decision},
        headers=admin_auth_headers(make_admin()),
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid status"


def test_unknown_request(client, make_admin, admin_auth_headers):
    resp = client.put(
        "/admin/transfer-requests/does-not-exist",
        json={"status": "approved"},
        headers=admin_auth_headers(make_admin()),
    )
    assert resp.status_code == 404
    assert resp.json()["message"] == "Request not found"


def test_user_token_is_forbidden(client, make_user, auth_headers, pending_request):
    resp = client.put(
        f"/admin/transfer-requests/{pending_request.id}",
        json={"status": "approved"},
        headers=auth_headers(make_user()),
    )
    assert resp.status_code == 403


def test_missing_token_is_unauthorized(client, pending_request):
    resp = client.get("/admin/transfer-requests")
    assert resp.status_code == 401


def test_support_role_can_list_but_not_decide(client, make_admin, admin_auth_headers, pending_request):
    support = make_admin(role=AdminRole.SUPPORT, email="support@portal.io")
    headers = admin_auth_headers(support)

    listing = client.get("/admin/transfer-requests", headers=headers)
    assert listing.status_code == 200
    assert listing.json()["pagination"]["totalItems"] == 1

    resp = client.put(
        f"/admin/transfer-requests/{pending_request.id}",
        json={"status": "approved"},
        headers=headers,
    )
    assert resp.status_code == 403


def test_list_filters_by_status(client, db, make_admin, admin_auth_headers, make_user, add_account_details):
    user = make_user()
    add_account_details(user)
    first = create_bank_transfer_request(db, user.id, 500)
    create_bank_transfer_request(db, user.id, 800)
    headers = admin_auth_headers(make_admin())
    client.put(f"/admin/transfer-requests/{first.id}", json={"status": "rejected"}, headers=headers)

    pending = client.get("/admin/transfer-requests", params={"status": "pending"}, headers=headers).json()
    assert [r["amount"] for r in pending["requests"]] == [800.0]

    everything = client.get("/admin/transfer-requests", headers=headers).json()
    assert [r["amount"] for r in everything["requests"]] == [800.0, 500.0]
