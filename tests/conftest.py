import asyncio

import pytest

from app.core.realtime import ChangeFeed
from app.modules.auth.service import clear_auth_cache
from tests.fakes import FakeSupabase


@pytest.fixture(autouse=True)
def _fresh_auth_cache():
    clear_auth_cache()
    yield
    clear_auth_cache()


@pytest.fixture
def db():
    return FakeSupabase()


@pytest.fixture
def feed():
    return ChangeFeed(maxsize=10)


def make_profile(db: FakeSupabase, username: str, role: str = "user", **extra):
    """Seed a profile and a matching auth user; returns the profile row."""
    profile = db.seed("profiles", {
        "id": extra.pop("id", f"user-{username}"),
        "email": f"{username}@uni.edu",
        "username": username,
        "full_name": username.title(),
        "user_role": role,
        **extra,
    })[0]
    db.auth.add_user(profile["id"], profile["email"])
    return profile


def make_group(db: FakeSupabase, name: str = "Algorithms", created_by: str = "user-alice", **extra):
    return db.seed("groups", {
        "name": name,
        "description": None,
        "created_by": created_by,
        "member_count": 0,
        **extra,
    })[0]


def make_membership(db: FakeSupabase, group_id: str, user_id: str, status: str = "approved", is_admin: bool = False):
    return db.seed("group_members", {
        "group_id": group_id,
        "user_id": user_id,
        "status": status,
        "is_admin": is_admin,
    })[0]


def make_post(db: FakeSupabase, author_id: str, status: str = "approved", post_type: str = "public", **extra):
    return db.seed("posts", {
        "title": extra.pop("title", "Lecture 1"),
        "content": extra.pop("content", "Intro notes"),
        "author_id": author_id,
        "post_type": post_type,
        "group_id": extra.pop("group_id", None),
        "approval_status": status,
        **extra,
    })[0]


@pytest.fixture
def alice(db):
    return make_profile(db, "alice")


@pytest.fixture
def bob(db):
    return make_profile(db, "bob")


@pytest.fixture
def admin(db):
    return make_profile(db, "root", role="universal_admin")


def run(coro):
    return asyncio.run(coro)
