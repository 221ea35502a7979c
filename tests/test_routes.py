import asyncio

import pytest
from fastapi.routing import APIRoute
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app.core.dependencies import get_user_supabase, get_ws_supabase
from app.database.supabase_client import get_auth_supabase, get_service_supabase, get_supabase
from app.main import app
from tests.conftest import make_group, make_membership, make_post, make_profile
from tests.fakes import FakeSupabase, api_error


@pytest.fixture
def client(db):
    app.dependency_overrides[get_supabase] = lambda: db
    app.dependency_overrides[get_service_supabase] = lambda: db
    app.dependency_overrides[get_auth_supabase] = lambda: db
    app.dependency_overrides[get_user_supabase] = lambda: db
    app.dependency_overrides[get_ws_supabase] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(profile):
    return {"Authorization": f"Bearer token-{profile['id']}"}


class TestPublicEndpoints:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}
        assert client.get("/ready").json() == {"status": "ready"}

    def test_security_headers(self, client):
        response = client.get("/health")
        assert response.headers["X-Frame-Options"] == "DENY"

    def test_password_strength(self, client):
        response = client.post("/api/v1/auth/password-strength", json={"password": "abcdefgH1!xyz"})
        assert response.json() == {"strength": 5, "label": "Strong"}

    def test_register_validation_never_reaches_supabase(self, client, db):
        response = client.post("/api/v1/auth/register", json={
            "email": "x@uni.edu", "password": "longenough", "confirm_password": "different",
            "full_name": "X", "username": "xavier", "agreed_to_terms": True,
        })
        assert response.status_code == 422
        assert db.calls == []
        assert db.auth.sign_ups == []

    def test_handlers_run_in_threadpool(self):
        # supabase calls block, so API handlers must be plain functions
        endpoints = [r.endpoint for r in app.routes if isinstance(r, APIRoute) and r.path.startswith("/api/v1")]
        assert endpoints
        assert [e.__name__ for e in endpoints if asyncio.iscoroutinefunction(e)] == []

    def test_login_uses_its_own_client(self, client, db):
        auth_client = FakeSupabase()
        auth_client.auth.add_user("user-dana", "dana@uni.edu")
        app.dependency_overrides[get_auth_supabase] = lambda: auth_client

        response = client.post("/api/v1/auth/login", json={"email": "dana@uni.edu", "password": "password123"})

        assert response.status_code == 200
        assert response.json()["access_token"] == "token-user-dana"
        assert "dana@uni.edu" not in db.auth.passwords


class TestAuthGate:
    def test_missing_token(self, client):
        assert client.get("/api/v1/groups").status_code in (401, 403)

    def test_unknown_token(self, client):
        response = client.get("/api/v1/groups", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_me(self, client, alice):
        body = client.get("/api/v1/auth/me", headers=auth(alice)).json()
        assert body["user"]["id"] == alice["id"]
        assert body["role"] == "user"
        assert body["is_universal_admin"] is False


class TestGroupRoutes:
    def test_create_join_and_approve(self, client, db, alice, bob):
        created = client.post("/api/v1/groups", json={"name": "Physics"}, headers=auth(alice))
        assert created.status_code == 201
        group_id = created.json()["id"]

        joined = client.post(f"/api/v1/groups/{group_id}/join", headers=auth(bob))
        assert joined.status_code == 201

        details = client.get(f"/api/v1/groups/{group_id}", headers=auth(bob)).json()
        assert details["membershipStatus"] == "pending"
        assert details["isMember"] is False

        pending = client.get(f"/api/v1/groups/{group_id}/members/pending", headers=auth(alice)).json()
        assert [m["user_id"] for m in pending] == [bob["id"]]

        approved = client.put(
            f"/api/v1/groups/memberships/{joined.json()['id']}",
            json={"status": "approved"},
            headers=auth(alice),
        )
        assert approved.status_code == 200
        details = client.get(f"/api/v1/groups/{group_id}", headers=auth(bob)).json()
        assert details["membershipStatus"] == "member"
        assert details["group"]["member_count"] == 2

    def test_double_join_is_conflict(self, client, db, alice, bob):
        group = make_group(db, created_by=alice["id"])
        client.post(f"/api/v1/groups/{group['id']}/join", headers=auth(bob))
        response = client.post(f"/api/v1/groups/{group['id']}/join", headers=auth(bob))
        assert response.status_code == 409

    def test_non_admin_cannot_approve(self, client, db, alice, bob):
        group = make_group(db, created_by=alice["id"])
        membership = make_membership(db, group["id"], bob["id"], status="pending")
        response = client.put(
            f"/api/v1/groups/memberships/{membership['id']}",
            json={"status": "approved"},
            headers=auth(bob),
        )
        assert response.status_code == 403

    def test_add_members_uses_camel_case(self, client, db, alice, bob):
        group = make_group(db, created_by=alice["id"])
        make_membership(db, group["id"], alice["id"], is_admin=True)
        response = client.post(
            f"/api/v1/groups/{group['id']}/members",
            json={"usernames": ["bob", "ghost", "alice"]},
            headers=auth(alice),
        )
        assert response.json() == {"added": ["bob"], "alreadyMembers": ["alice"], "notFound": ["ghost"]}

    def test_member_can_leave(self, client, db, alice, bob):
        group = make_group(db, created_by=alice["id"])
        make_membership(db, group["id"], bob["id"])
        response = client.delete(f"/api/v1/groups/{group['id']}/members/{bob['id']}", headers=auth(bob))
        assert response.status_code == 204
        assert db.rows("group_members") == []


class TestPostRoutes:
    def test_create_and_review(self, client, db, alice, admin):
        created = client.post("/api/v1/posts", json={"title": "Graphs", "content": "BFS"}, headers=auth(alice))
        assert created.status_code == 201
        post_id = created.json()["id"]
        assert created.json()["approval_status"] == "pending"

        assert client.get("/api/v1/posts/feed", headers=auth(alice)).json() == []

        empty_reason = client.post(f"/api/v1/posts/{post_id}/reject", json={"reason": " "}, headers=auth(admin))
        assert empty_reason.status_code == 422

        approved = client.post(f"/api/v1/posts/{post_id}/approve", headers=auth(admin))
        assert approved.json()["approval_status"] == "approved"
        feed = client.get("/api/v1/posts/feed", headers=auth(alice)).json()
        assert [p["id"] for p in feed] == [post_id]

    def test_user_cannot_approve(self, client, db, alice, bob):
        post = make_post(db, alice["id"], status="pending")
        response = client.post(f"/api/v1/posts/{post['id']}/approve", headers=auth(bob))
        assert response.status_code == 403

    def test_upload_attachment(self, client, db, alice):
        response = client.post(
            "/api/v1/posts/attachments",
            files=[("files", ("notes.txt", b"hello", "text/plain"))],
            headers=auth(alice),
        )
        assert response.status_code == 201
        assert response.json()[0]["name"] == "notes.txt"
        assert len(db.files) == 1

    def test_cannot_attach_another_users_upload(self, client, db, alice, bob):
        uploaded = client.post(
            "/api/v1/posts/attachments",
            files=[("files", ("notes.txt", b"hello", "text/plain"))],
            headers=auth(alice),
        ).json()
        response = client.post(
            "/api/v1/posts",
            json={"title": "t", "content": "c", "attachments": uploaded},
            headers=auth(bob),
        )
        assert response.status_code == 400
        assert db.rows("posts") == []

    def test_like_and_comment(self, client, db, alice, bob):
        post = make_post(db, alice["id"])
        liked = client.post(f"/api/v1/posts/{post['id']}/like", headers=auth(bob)).json()
        assert liked == {"post_id": post["id"], "liked": True, "like_count": 1}

        comment = client.post(f"/api/v1/posts/{post['id']}/comments", json={"content": "thanks"}, headers=auth(bob))
        assert comment.status_code == 201
        comments = client.get(f"/api/v1/posts/{post['id']}/comments", headers=auth(alice)).json()
        assert [c["content"] for c in comments] == ["thanks"]

        deleted = client.delete(f"/api/v1/comments/{comment.json()['id']}", headers=auth(bob))
        assert deleted.status_code == 204

    def test_remote_permission_denied_is_403(self, client, db, alice):
        db.fail("posts", "insert", api_error("new row violates row-level security policy", "42501"))
        response = client.post("/api/v1/posts", json={"title": "t", "content": "c"}, headers=auth(alice))
        assert response.status_code == 403


class TestFolderRoutes:
    def test_tree(self, client, alice):
        parent = client.post("/api/v1/folders", json={"name": "CS"}, headers=auth(alice)).json()
        client.post("/api/v1/folders", json={"name": "Algorithms", "parent_folder_id": parent["id"]}, headers=auth(alice))
        tree = client.get("/api/v1/folders/tree", headers=auth(alice)).json()
        assert tree[0]["name"] == "CS"
        assert tree[0]["children"][0]["name"] == "Algorithms"


class TestAdminRoutes:
    def test_dashboard_needs_group_admin(self, client, db, alice):
        assert client.get("/api/v1/admin/dashboard", headers=auth(alice)).status_code == 403
        moderator = make_profile(db, "mod", role="group_admin")
        make_post(db, alice["id"], status="pending")
        stats = client.get("/api/v1/admin/dashboard", headers=auth(moderator)).json()
        assert stats == {"total_users": 2, "total_posts": 1, "pending_posts": 1, "approved_posts": 0}

    def test_user_directory_and_role_change(self, client, db, alice, admin):
        group = make_group(db, name="Physics", created_by=alice["id"])
        make_membership(db, group["id"], alice["id"], is_admin=True)

        users = client.get("/api/v1/admin/users", headers=auth(admin)).json()
        by_id = {u["id"]: u for u in users}
        assert by_id[alice["id"]]["memberships"][0]["group_id"] == group["id"]

        response = client.put(
            f"/api/v1/admin/users/{alice['id']}/role",
            json={"user_role": "group_admin"},
            headers=auth(admin),
        )
        assert response.json()["user_role"] == "group_admin"

    def test_role_change_needs_universal_admin(self, client, alice, bob):
        response = client.put(
            f"/api/v1/admin/users/{bob['id']}/role",
            json={"user_role": "universal_admin"},
            headers=auth(alice),
        )
        assert response.status_code == 403


class TestRealtimeRoute:
    def test_missing_token_is_refused(self, client):
        with client.websocket_connect("/api/v1/realtime?table=posts") as ws:
            with pytest.raises(WebSocketDisconnect) as exc:
                ws.receive_json()
        assert exc.value.code == 1008

    def test_non_member_cannot_watch_group(self, client, db, alice, bob):
        group = make_group(db, created_by=alice["id"])
        url = f"/api/v1/realtime?token=token-{bob['id']}&table=posts&filter=group_id=eq.{group['id']}"
        with client.websocket_connect(url) as ws:
            with pytest.raises(WebSocketDisconnect) as exc:
                ws.receive_json()
        assert exc.value.code == 1008

    def test_streams_group_changes(self, client, db, alice):
        group = make_group(db, created_by=alice["id"])
        make_membership(db, group["id"], alice["id"])
        url = f"/api/v1/realtime?token=token-{alice['id']}&table=posts&filter=group_id=eq.{group['id']}"
        with client.websocket_connect(url) as ws:
            assert ws.receive_json()["type"] == "subscribed"
            client.post(
                "/api/v1/posts",
                json={"title": "t", "content": "c", "post_type": "group", "group_id": group["id"]},
                headers=auth(alice),
            )
            event = ws.receive_json()
        assert event["table"] == "posts"
        assert event["event_type"] == "INSERT"
        assert event["new"]["group_id"] == group["id"]

    def test_unfiltered_watch_skips_notes_the_caller_cannot_read(self, client, db, alice, bob):
        group = make_group(db, created_by=alice["id"])
        make_membership(db, group["id"], alice["id"], is_admin=True)
        url = f"/api/v1/realtime?token=token-{bob['id']}&table=posts"
        with client.websocket_connect(url) as ws:
            assert ws.receive_json()["type"] == "subscribed"
            client.post(
                "/api/v1/posts",
                json={"title": "secret group note", "content": "c", "post_type": "group", "group_id": group["id"]},
                headers=auth(alice),
            )
            client.post("/api/v1/posts", json={"title": "bob's note", "content": "c"}, headers=auth(bob))
            event = ws.receive_json()
        assert event["new"]["title"] == "bob's note"
        assert event["new"]["author_id"] == bob["id"]

    def test_unfiltered_membership_watch_hides_other_groups(self, client, db, alice, bob):
        carol = make_profile(db, "carol")
        group = make_group(db, created_by=alice["id"])
        make_membership(db, group["id"], alice["id"], is_admin=True)
        other = make_group(db, created_by=bob["id"], name="Bob's group")
        url = f"/api/v1/realtime?token=token-{bob['id']}&table=group_members"
        with client.websocket_connect(url) as ws:
            assert ws.receive_json()["type"] == "subscribed"
            client.post(f"/api/v1/groups/{group['id']}/join", headers=auth(carol))
            client.post(f"/api/v1/groups/{other['id']}/join", headers=auth(bob))
            event = ws.receive_json()
        assert event["new"]["group_id"] == other["id"]
        assert event["new"]["user_id"] == bob["id"]
