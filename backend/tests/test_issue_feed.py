from datetime import datetime, timedelta

import pytest

from civix.extensions import db
from civix.models import Issue
from civix.services.issue_feed import MAX_LIMIT, positive_int, regular_offset

BASE = datetime(2026, 1, 1, 8, 0, 0)


def _titles(resp):
    return [i["title"] for i in resp.get_json()["data"]["issues"]]


@pytest.fixture
def seeded(make_issue):
    """3 boosted + 12 regular issues; regular r11 is the newest."""
    for i in range(12):
        make_issue("r@example.com", title=f"r{i}", created_at=BASE + timedelta(minutes=i))
    for i in range(3):
        make_issue(
            "b@example.com",
            title=f"b{i}",
            priority="high",
            boosted_at=BASE + timedelta(hours=1, minutes=i),
            created_at=BASE - timedelta(days=1),
        )


def test_regular_offset():
    assert regular_offset(2, 5, 3) == 2
    assert regular_offset(3, 5, 3) == 7
    assert regular_offset(2, 3, 4) == 0
    assert regular_offset(2, 10, 0) == 10


def test_positive_int_falls_back():
    assert positive_int("4", 10) == 4
    assert positive_int("0", 10) == 10
    assert positive_int("-3", 1) == 1
    assert positive_int("abc", 10) == 10
    assert positive_int(None, 1) == 1


def test_page_one_pins_boosted_then_fills(client, seeded):
    resp = client.get("/api/issues?page=1&limit=5")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert _titles(resp) == ["b2", "b1", "b0", "r11", "r10"]
    assert data["currentPage"] == 1
    assert data["totalPages"] == 3
    assert data["totalIssues"] == 15
    assert data["boostedCount"] == 3


def test_later_pages_continue_regular_sequence(client, seeded):
    page2 = client.get("/api/issues?page=2&limit=5")
    page3 = client.get("/api/issues?page=3&limit=5")
    page4 = client.get("/api/issues?page=4&limit=5")
    assert _titles(page2) == ["r9", "r8", "r7", "r6", "r5"]
    assert _titles(page3) == ["r4", "r3", "r2", "r1", "r0"]
    assert _titles(page4) == []

    seen = _titles(client.get("/api/issues?page=1&limit=5")) + _titles(page2) + _titles(page3)
    assert len(seen) == len(set(seen)) == 15


def test_more_boosted_than_limit(client, make_issue):
    for i in range(4):
        make_issue("b@example.com", title=f"b{i}", priority="high", boosted_at=BASE + timedelta(minutes=i))
    for i in range(5):
        make_issue("r@example.com", title=f"r{i}", created_at=BASE + timedelta(minutes=i))

    page1 = client.get("/api/issues?page=1&limit=3")
    assert _titles(page1) == ["b3", "b2", "b1", "b0"]
    assert page1.get_json()["data"]["totalPages"] == 3

    page2 = client.get("/api/issues?page=2&limit=3")
    assert _titles(page2) == ["r4", "r3", "r2"]


def test_regular_issues_order_by_priority_then_recency(client, make_issue):
    make_issue("r@example.com", title="old-high", priority="high", created_at=BASE)
    make_issue("r@example.com", title="new-low", priority="low", created_at=BASE + timedelta(hours=2))
    make_issue("r@example.com", title="new-normal", created_at=BASE + timedelta(hours=1))

    assert _titles(client.get("/api/issues")) == ["old-high", "new-normal", "new-low"]


def test_filters_apply_to_boosted_and_regular(client, make_issue):
    make_issue("a@example.com", title="Water leak", category="Water", status="pending")
    make_issue("a@example.com", title="Water main burst", category="Water", status="resolved",
               priority="high", boosted_at=BASE)
    make_issue("a@example.com", title="Garbage pile", category="Waste", location="Uttara")

    water = client.get("/api/issues?category=Water").get_json()["data"]
    assert water["totalIssues"] == 2
    assert water["boostedCount"] == 1

    pending = client.get("/api/issues?status=pending&category=Water")
    assert _titles(pending) == ["Water leak"]

    by_location = client.get("/api/issues?search=uttara")
    assert _titles(by_location) == ["Garbage pile"]

    by_title = client.get("/api/issues?search=WATER")
    assert sorted(_titles(by_title)) == ["Water leak", "Water main burst"]

    high = client.get("/api/issues?priority=high")
    assert _titles(high) == ["Water main burst"]


def test_search_treats_wildcards_literally(client, make_issue):
    make_issue("a@example.com", title="100% dark street")
    make_issue("a@example.com", title="Dark street")

    assert _titles(client.get("/api/issues?search=%25")) == ["100% dark street"]


def test_bad_paging_params_use_defaults(client, make_issue):
    make_issue("a@example.com", title="only")
    data = client.get("/api/issues?page=0&limit=abc").get_json()["data"]
    assert data["currentPage"] == 1
    assert data["totalPages"] == 1
    assert [i["title"] for i in data["issues"]] == ["only"]


def test_limit_is_capped(client, fetch):
    def _seed():
        now = datetime.utcnow()
        db.session.add_all(
            Issue(title=f"i{n}", user_email="a@example.com", created_at=now, updated_at=now)
            for n in range(MAX_LIMIT + 1)
        )
        db.session.commit()

    fetch(_seed)
    data = client.get("/api/issues?limit=100000").get_json()["data"]
    assert len(data["issues"]) == MAX_LIMIT
    assert data["totalIssues"] == MAX_LIMIT + 1
    assert data["totalPages"] == 2


def test_empty_feed(client):
    data = client.get("/api/issues").get_json()["data"]
    assert data == {"issues": [], "currentPage": 1, "totalPages": 0, "totalIssues": 0, "boostedCount": 0}
