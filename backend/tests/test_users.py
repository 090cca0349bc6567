from civix.extensions import db
from civix.models import Payment


def test_list_users_is_admin_only(client, make_user):
    admin = make_user("admin@example.com", role="admin")
    citizen = make_user("c@example.com")
    make_user("s@example.com", role="staff")

    resp = client.get("/api/users", headers=admin)
    assert resp.status_code == 200
    assert [u["email"] for u in resp.get_json()["data"]] == ["c@example.com"]
    assert client.get("/api/users", headers=citizen).status_code == 403


def test_block_requires_flag(client, make_user):
    admin = make_user("admin@example.com", role="admin")
    make_user("c@example.com")

    assert client.patch("/api/users/c@example.com/block", headers=admin, json={}).status_code == 400
    resp = client.patch("/api/users/c@example.com/block", headers=admin, json={"isBlocked": True})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["isBlocked"] is True


def test_premium_is_self_only(client, make_user):
    me = make_user("me@example.com")
    make_user("you@example.com")

    assert client.patch("/api/users/you@example.com/premium", headers=me).status_code == 403

    resp = client.patch("/api/users/me@example.com/premium", headers=me)
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["isPremium"] is True
    assert data["premiumSince"]


def test_user_stats(client, make_user, fetch):
    me = make_user("me@example.com", issue_count=2)

    def _pay():
        db.session.add(Payment(user_email="me@example.com", amount=100, type="boost", invoice_id="INV-1"))
        db.session.add(Payment(user_email="me@example.com", amount=500, type="subscription", invoice_id="INV-2"))
        db.session.commit()

    fetch(_pay)
    resp = client.get("/api/users/me@example.com/stats", headers=me)
    assert resp.status_code == 200
    assert resp.get_json()["data"] == {
        "issueCount": 2,
        "isPremium": False,
        "isBlocked": False,
        "totalPayments": 600,
        "paymentCount": 2,
    }
    assert client.get("/api/users/other@example.com/stats", headers=me).status_code == 403
