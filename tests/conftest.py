"""
Shared test fixtures.

The environment is pinned before anything from localpress is imported so the
engine binds to an in-memory SQLite database and the background publisher
stays off.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PUBLISH_INTERVAL_SECONDS"] = "0"
os.environ["SECRET_KEY"] = "test-secret"
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-google-client")
os.environ.setdefault("GOOGLE_CLIENT_SECRET", "test-google-secret")
os.environ.setdefault("FRONTEND_URL", "http://frontend.test")
os.environ.setdefault("BASE_URL", "http://api.test")
for key in ("SENDGRID_API_KEY", "STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", "FORMSPREE_ENDPOINT"):
    os.environ.pop(key, None)

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

from localpress.db.session import engine
from localpress.db.models import Article, UserProfile, utc_now
from localpress.main import app
from localpress.utils.auth import create_access_token


@pytest.fixture(autouse=True)
def tables():
    SQLModel.metadata.create_all(engine)
    yield
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture
def client():
    return TestClient(app)


# =============================================================================
# Factories
# =============================================================================

@pytest.fixture
def make_user(session):
    counter = {"n": 0}

    def _make(**overrides) -> UserProfile:
        counter["n"] += 1
        n = counter["n"]
        fields = {
            "google_id": f"google-{n}",
            "email": f"user{n}@example.com",
            "full_name": f"User {n}",
        }
        fields.update(overrides)
        user = UserProfile(**fields)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_article(session):
    counter = {"n": 0}

    def _make(**overrides) -> Article:
        counter["n"] += 1
        n = counter["n"]
        now = utc_now()
        fields = {
            "title": f"Story {n}",
            "slug": f"story-{n}",
            "content": "Body text",
            "content_blocks": [{"id": "b1", "type": "text", "content": "Body text", "order": 0}],
            "status": "published",
            "published_at": now - timedelta(hours=1),
            "sections": ["local"],
            "section": "local",
        }
        fields.update(overrides)
        article = Article(**fields)
        session.add(article)
        session.commit()
        session.refresh(article)
        return article

    return _make


def auth_headers(user: UserProfile) -> dict:
    token = create_access_token({"user_id": user.id, "email": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(make_user):
    admin = make_user(is_admin=True, username="editor")
    return auth_headers(admin)


@pytest.fixture
def super_admin(make_user):
    return make_user(is_admin=True, is_super_admin=True, username="chief")
