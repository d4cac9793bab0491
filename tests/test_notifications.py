from portal.models.admin import Admin
from portal.models.notification import Notification
from portal.utils.notification_helper import create_notification

from create_admin_from_env import create_admin_from_env


def _notify(db, user, title):
    return create_notification(db, user_id=user.id, type="transfer", title=title, message=f"{title} body")


def test_list_mark_and_delete(client, db, make_user, auth_headers):
    user = make_user()
    other = make_user()
    first = _notify(db, user, "first")
    _notify(db, user, "second")
    _notify(db, other, "not yours")
    headers = auth_headers(user)

    listing = client.get("/api/notifications", headers=headers).json()
    assert [n["title"] for n in listing["notifications"]] == ["second", "first"]
    assert listing["unreadCount"] == 2

    assert client.put(f"/api/notifications/{first.id}/read", headers=headers).status_code == 200
    unread = client.get("/api/notifications", params={"unread": "true"}, headers=headers).json()
    assert [n["title"] for n in unread["notifications"]] == ["second"]

    client.put("/api/notifications/read-all", headers=headers)
    assert client.get("/api/notifications", headers=headers).json()["unreadCount"] == 0

    assert client.delete(f"/api/notifications/{first.id}", headers=headers).status_code == 200
    db.expire_all()
    assert db.query(Notification).filter(Notification.user_id == user.id).count() == 1


def test_cannot_touch_someone_elses_notification(client, db, make_user, auth_headers):
    owner = make_user()
    intruder = make_user()
    note = _notify(db, owner, "private")

    resp = client.put(f"/api/notifications/{note.id}/read", headers=auth_headers(intruder))
    assert resp.status_code == 404
    assert client.delete(f"/api/notifications/{note.id}", headers=auth_headers(intruder)).status_code == 404


def test_pagination(client, db, make_user, auth_headers):
    user = make_user()
    for i in range(5):
        _notify(db, user, f"n{i}")

    page = client.get("/api/notifications", params={"page": 2, "limit": 2}, headers=auth_headers(user)).json()

    assert [n["title"] for n in page["notifications"]] == ["n2", "n1"]
    assert page["pagination"]["totalPages"] == 3
    assert page["pagination"]["hasNext"] is True


def test_seed_admin_from_environment(db, monkeypatch):
    monkeypatch.setenv("ADMIN_EMAIL", "seed@portal.io")
    monkeypatch.setenv("ADMIN_PASSWORD", "seedpass1")
    monkeypatch.setenv("ADMIN_ROLE", "super_admin")

    assert create_admin_from_env(db) is True
    assert create_admin_from_env(db) is False

    admin = db.query(Admin).one()
    assert admin.email == "seed@portal.io"
    assert admin.role.value == "super_admin"
