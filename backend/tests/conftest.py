"""Shared fixtures: a fresh app on in-memory SQLite per test, plus row factories."""

from __future__ import annotations

from datetime import datetime

import pytest

from civix import create_app
from civix.extensions import db
from civix.models import Issue, User
from civix.utils.jwt_utils import create_access_token

PASSWORD = "secret123"


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "ENV": "test",
        "SECRET_KEY": "test-secret-key-0123456789",
        "JWT_SECRET": "test-jwt-secret-0123456789",
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "AUTO_CREATE_TABLES": True,
        "STRIPE_SECRET_KEY": "",
        "STRIPE_WEBHOOK_SECRET": "",
        "CLIENT_URL": "http://client.test",
        "FREE_ISSUE_LIMIT": 3,
        "LOG_LEVEL": "WARNING",
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Insert a user and return Authorization headers for them."""

    def _make(email, role="citizen", name=None, password=PASSWORD, **fields):
        with app.app_context():
            u = User(name=name or email.split("@")[0].title(), email=email, role=role, **fields)
            u.set_password(password)
            db.session.add(u)
            db.session.commit()
            token = create_access_token(u.id, u.email)
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def make_issue(app):
    """Insert an issue directly (bypassing the quota) and return its id."""

    def _make(email, title="Pothole on Main St", **fields):
        with app.app_context():
            now = datetime.utcnow()
            issue = Issue(
                title=title,
                user_email=email,
                user_name=email.split("@")[0].title(),
                category=fields.pop("category", "Road"),
                location=fields.pop("location", "Dhaka"),
                created_at=fields.pop("created_at", now),
                updated_at=now,
                **fields,
            )
            db.session.add(issue)
            db.session.commit()
            return issue.id

    return _make


@pytest.fixture
def fetch(app):
    """Run ``fn`` inside an app context and return its result."""

    def _fetch(fn):
        with app.app_context():
            return fn()

    return _fetch
