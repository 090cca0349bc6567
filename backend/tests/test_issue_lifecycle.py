import pytest

from civix.extensions import db
from civix.models import Issue, Notification, User
from civix.services.issue_lifecycle import VALID_TRANSITIONS, can_transition


def _report(client, headers, title="Broken streetlight", **extra):
    body = {"title": title, "description": "Dark at night", "category": "Electricity", "location": "Mirpur"}
    body.update(extra)
    return client.post("/api/issues", headers=headers, json=body)


@pytest.fixture
def cast(make_user):
    return {
        "citizen": make_user("citizen@example.com"),
        "neighbour": make_user("neighbour@example.com"),
        "staff": make_user("staff@example.com", role="staff", name="Sadia"),
        "other_staff": make_user("other.staff@example.com", role="staff"),
        "admin": make_user("admin@example.com", role="admin"),
    }


def _assign(client, cast, issue_id, staff_email="staff@example.com"):
    return client.patch(
        f"/api/admin/issues/{issue_id}/assign",
        headers=cast["admin"],
        json={"staffEmail": staff_email},
    )


def _status(client, headers, issue_id, status, message=None):
    body = {"status": status}
    if message:
        body["message"] = message
    return client.patch(f"/api/staff/issues/{issue_id}/status", headers=headers, json=body)


def test_transition_table():
    assert can_transition("pending", "in-progress")
    assert can_transition("in-progress", "working")
    assert can_transition("in-progress", "resolved")
    assert can_transition("working", "resolved")
    assert can_transition("resolved", "closed")
    assert not can_transition("pending", "resolved")
    assert not can_transition("closed", "pending")
    assert not can_transition("rejected", "in-progress")
    assert "closed" not in VALID_TRANSITIONS


def test_create_issue_sets_defaults_and_counts(client, cast, fetch):
    resp = _report(client, cast["citizen"])
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["status"] == "pending"
    assert data["priority"] == "normal"
    assert data["upvotes"] == 0
    assert data["userEmail"] == "citizen@example.com"
    assert [t["status"] for t in data["timeline"]] == ["pending"]
    assert data["timeline"][0]["updatedByRole"] == "citizen"

    count = fetch(lambda: User.query.filter_by(email="citizen@example.com").first().issue_count)
    assert count == 1


def test_create_issue_requires_title_and_token(client, cast):
    assert _report(client, cast["citizen"], title="  ").status_code == 400
    assert client.post("/api/issues", json={"title": "x"}).status_code == 401


def test_create_issue_tolerates_odd_bodies(client, cast):
    listed = client.post("/api/issues", headers=cast["citizen"], json=["Broken streetlight"])
    assert listed.status_code == 400
    assert listed.get_json()["message"] == "title is required"

    numeric = _report(client, cast["citizen"], title=123, location=7)
    assert numeric.status_code == 201
    assert numeric.get_json()["data"]["title"] == "123"
    assert numeric.get_json()["data"]["location"] == "7"


def test_free_quota_and_premium(client, cast, make_user):
    for i in range(3):
        assert _report(client, cast["citizen"], title=f"Issue {i}").status_code == 201

    over = _report(client, cast["citizen"], title="One too many")
    assert over.status_code == 403
    assert over.get_json()["needsPremium"] is True

    premium = make_user("premium@example.com", is_premium=True, issue_count=10)
    assert _report(client, premium).status_code == 201


def test_blocked_citizen_cannot_report(client, make_user):
    blocked = make_user("blocked@example.com", is_blocked=True)
    resp = _report(client, blocked)
    assert resp.status_code == 403
    assert "blocked" in resp.get_json()["message"]


def test_edit_only_own_pending_issue(client, cast, fetch):
    issue_id = _report(client, cast["citizen"]).get_json()["data"]["_id"]

    other = client.patch(f"/api/issues/{issue_id}", headers=cast["neighbour"], json={"title": "Hijack"})
    assert other.status_code == 403

    ok = client.patch(
        f"/api/issues/{issue_id}",
        headers=cast["citizen"],
        json={"title": "Two lights out", "status": "resolved", "priority": "high", "upvotes": 99},
    )
    assert ok.status_code == 200
    data = ok.get_json()["data"]
    assert data["title"] == "Two lights out"
    assert data["status"] == "pending"
    assert data["priority"] == "normal"
    assert data["upvotes"] == 0

    def _start():
        issue = db.session.get(Issue, issue_id)
        issue.status = "in-progress"
        db.session.commit()

    fetch(_start)
    late = client.patch(f"/api/issues/{issue_id}", headers=cast["citizen"], json={"title": "Too late"})
    assert late.status_code == 400


def test_delete_decrements_issue_count(client, cast, fetch):
    issue_id = _report(client, cast["citizen"]).get_json()["data"]["_id"]

    assert client.delete(f"/api/issues/{issue_id}", headers=cast["neighbour"]).status_code == 403
    resp = client.delete(f"/api/issues/{issue_id}", headers=cast["citizen"])
    assert resp.status_code == 200
    assert resp.get_json()["data"]["_id"] == issue_id

    assert client.get(f"/api/issues/{issue_id}").status_code == 404
    assert fetch(lambda: User.query.filter_by(email="citizen@example.com").first().issue_count) == 0


def test_upvote_once_and_never_own(client, cast):
    issue_id = _report(client, cast["citizen"]).get_json()["data"]["_id"]

    first = client.post(f"/api/issues/{issue_id}/upvote", headers=cast["neighbour"])
    assert first.status_code == 200
    assert first.get_json()["data"]["upvotes"] == 1

    again = client.post(f"/api/issues/{issue_id}/upvote", headers=cast["neighbour"])
    assert again.status_code == 400

    own = client.post(f"/api/issues/{issue_id}/upvote", headers=cast["citizen"])
    assert own.status_code == 403

    detail = client.get(f"/api/issues/{issue_id}").get_json()["data"]
    assert detail["upvotes"] == 1
    assert detail["upvotedBy"] == ["neighbour@example.com"]


def test_assign_adds_marker_without_changing_status(client, cast, fetch):
    issue_id = _report(client, cast["citizen"]).get_json()["data"]["_id"]

    resp = _assign(client, cast, issue_id)
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["status"] == "pending"
    assert data["assignedStaff"]["email"] == "staff@example.com"
    assert data["assignedStaff"]["name"] == "Sadia"
    assert data["timeline"][-1]["status"] == "assigned"
    assert data["timeline"][-1]["updatedByRole"] == "admin"

    assert _assign(client, cast, issue_id, "other.staff@example.com").status_code == 400

    staff_count = fetch(lambda: User.query.filter_by(email="staff@example.com").first().assigned_issues_count)
    assert staff_count == 1

    notified = fetch(lambda: sorted(n.user_email for n in Notification.query.all()))
    assert notified == ["citizen@example.com", "staff@example.com"]


def test_assign_unknown_staff_is_404(client, cast):
    issue_id = _report(client, cast["citizen"]).get_json()["data"]["_id"]
    assert _assign(client, cast, issue_id, "nobody@example.com").status_code == 404
    assert _assign(client, cast, issue_id, "citizen@example.com").status_code == 404
    assert client.patch("/api/admin/issues/999/assign", headers=cast["admin"], json={"staffEmail": "staff@example.com"}).status_code == 404


def test_only_admin_assigns(client, cast):
    issue_id = _report(client, cast["citizen"]).get_json()["data"]["_id"]
    resp = client.patch(
        f"/api/admin/issues/{issue_id}/assign",
        headers=cast["staff"],
        json={"staffEmail": "staff@example.com"},
    )
    assert resp.status_code == 403
    assert resp.get_json()["message"] == "Forbidden: Admin access required"


def test_staff_walks_the_state_machine(client, cast, fetch):
    issue_id = _report(client, cast["citizen"]).get_json()["data"]["_id"]
    _assign(client, cast, issue_id)

    assert _status(client, cast["staff"], issue_id, "resolved").status_code == 400
    assert _status(client, cast["other_staff"], issue_id, "in-progress").status_code == 403
    assert _status(client, cast["citizen"], issue_id, "in-progress").status_code == 403

    started = _status(client, cast["staff"], issue_id, "in-progress")
    assert started.status_code == 200
    assert started.get_json()["data"]["timeline"][-1]["message"] == "Status changed to in-progress"

    assert _status(client, cast["staff"], issue_id, "working", "Crew on site").status_code == 200
    assert _status(client, cast["staff"], issue_id, "pending").status_code == 400

    done = _status(client, cast["staff"], issue_id, "resolved")
    assert done.status_code == 200
    assert _status(client, cast["staff"], issue_id, "closed").status_code == 200
    assert _status(client, cast["staff"], issue_id, "resolved").status_code == 400

    timeline = client.get(f"/api/issues/{issue_id}").get_json()["data"]["timeline"]
    assert [t["status"] for t in timeline] == ["pending", "assigned", "in-progress", "working", "resolved", "closed"]
    assert timeline[3]["message"] == "Crew on site"

    resolved = fetch(lambda: User.query.filter_by(email="staff@example.com").first().resolved_issues_count)
    assert resolved == 1

    reporter_notes = fetch(lambda: Notification.query.filter_by(user_email="citizen@example.com").count())
    # assignment + four status changes
    assert reporter_notes == 5


def test_reject_only_from_pending(client, cast):
    issue_id = _report(client, cast["citizen"]).get_json()["data"]["_id"]

    resp = client.patch(f"/api/admin/issues/{issue_id}/reject", headers=cast["admin"], json={"reason": "Duplicate"})
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["status"] == "rejected"
    assert data["rejectedReason"] == "Duplicate"
    assert data["rejectedAt"]
    assert data["timeline"][-1]["message"] == "Issue rejected by admin. Reason: Duplicate"

    again = client.patch(f"/api/admin/issues/{issue_id}/reject", headers=cast["admin"], json={})
    assert again.status_code == 400


def test_user_issues_are_self_only(client, cast):
    _report(client, cast["citizen"])
    mine = client.get("/api/issues/user/citizen@example.com", headers=cast["citizen"])
    assert mine.status_code == 200
    assert len(mine.get_json()["data"]) == 1
    assert client.get("/api/issues/user/citizen@example.com", headers=cast["neighbour"]).status_code == 403


def test_latest_resolved(client, make_issue):
    make_issue("a@example.com", title="Open")
    make_issue("a@example.com", title="Fixed", status="resolved")
    resp = client.get("/api/issues/resolved/latest")
    assert resp.status_code == 200
    assert [i["title"] for i in resp.get_json()["data"]] == ["Fixed"]
