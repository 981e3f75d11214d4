"""
tests/test_users_routes.py -- User management pages and list-page intents.

All requests carry the admin session cookie from the web fixture. Records
created here use distinct email prefixes so tests in this module stay
independent of each other despite the shared module-scoped database.
"""

from __future__ import annotations

import json
import uuid

from auth.models import User
from auth.passwords import hash_password, verify_password


def _add_user(web, email: str, password: str = "secret1") -> str:
    return web.client.app.state.user_store.create_user(User(email=email, password_hash=hash_password(password)))


def _post(web, path: str = "/users", **data):
    return web.client.post(path, data=data, headers=web.auth_headers)


class TestList:
    def test_lists_users(self, web) -> None:
        _add_user(web, "list-one@example.com")
        resp = web.client.get("/users", headers=web.auth_headers)
        assert resp.status_code == 200
        assert "list-one@example.com" in resp.text

    def test_filter_by_email(self, web) -> None:
        _add_user(web, "filter-keep@example.com")
        _add_user(web, "other-drop@example.com")
        resp = web.client.get("/users?q=filter-keep", headers=web.auth_headers)
        assert "filter-keep@example.com" in resp.text
        assert "other-drop@example.com" not in resp.text

    def test_bad_page_number_falls_back(self, web) -> None:
        resp = web.client.get("/users?page=abc", headers=web.auth_headers)
        assert resp.status_code == 200


class TestIntents:
    def test_create(self, web) -> None:
        resp = _post(web, intent="create", email="create-ok@example.com", password="secret1")
        assert resp.status_code == 200
        assert "User created successfully" in resp.text
        user = web.client.app.state.user_store.get_by_email("create-ok@example.com")
        assert verify_password("secret1", user.password_hash)

    def test_create_requires_email_and_password(self, web) -> None:
        assert "Email is required" in _post(web, intent="create", email="", password="secret1").text
        assert "Password is required" in _post(web, intent="create", email="nopw@example.com").text

    def test_create_rejects_short_password(self, web) -> None:
        resp = _post(web, intent="create", email="shortpw@example.com", password="123")
        assert "Password must be at least 6 characters" in resp.text

    def test_create_duplicate_email(self, web) -> None:
        _add_user(web, "create-dup@example.com")
        resp = _post(web, intent="create", email="create-dup@example.com", password="secret1")
        assert "Email already exists" in resp.text

    def test_update_keeps_password_when_blank(self, web) -> None:
        uid = _add_user(web, "upd-a@example.com", "original1")
        resp = _post(web, intent="update", userId=uid, email="upd-b@example.com")
        assert "User updated successfully" in resp.text
        user = web.client.app.state.user_store.get_by_id(uid)
        assert user.email == "upd-b@example.com"
        assert verify_password("original1", user.password_hash)

    def test_update_rehashes_new_password(self, web) -> None:
        uid = _add_user(web, "upd-pw@example.com", "original1")
        _post(web, intent="update", userId=uid, email="upd-pw@example.com", password="changed1")
        assert verify_password("changed1", web.client.app.state.user_store.get_by_id(uid).password_hash)

    def test_update_to_another_users_email(self, web) -> None:
        _add_user(web, "taken@example.com")
        uid = _add_user(web, "mover@example.com")
        resp = _post(web, intent="update", userId=uid, email="taken@example.com")
        assert "Email already exists" in resp.text

    def test_update_missing_user_is_404(self, web) -> None:
        resp = _post(web, intent="update", userId=str(uuid.uuid4()), email="ghost-upd@example.com")
        assert resp.status_code == 404

    def test_delete(self, web) -> None:
        uid = _add_user(web, "delete-me@example.com")
        resp = _post(web, intent="delete", userId=uid)
        assert "User deleted successfully" in resp.text
        assert web.client.app.state.user_store.get_by_id(uid) is None

    def test_delete_missing_is_404(self, web) -> None:
        resp = _post(web, intent="delete", userId=str(uuid.uuid4()))
        assert resp.status_code == 404
        assert "User Not Found" in resp.text

    def test_unknown_intent_renders_list(self, web) -> None:
        resp = _post(web, intent="explode")
        assert resp.status_code == 200
        assert "successfully" not in resp.text


class TestBulkDelete:
    def test_json_ids(self, web) -> None:
        ids = [_add_user(web, f"bulk-json-{i}@example.com") for i in range(2)]
        resp = _post(web, intent="bulk-delete", ids=json.dumps(ids))
        assert "2 users deleted successfully" in resp.text
        assert all(web.client.app.state.user_store.get_by_id(i) is None for i in ids)

    def test_selected_checkboxes(self, web) -> None:
        ids = [_add_user(web, f"bulk-box-{i}@example.com") for i in range(3)]
        resp = web.client.post(
            "/users",
            data={"intent": "bulk-delete", "selected": ids},
            headers=web.auth_headers,
        )
        assert "3 users deleted successfully" in resp.text

    def test_invalid_json(self, web) -> None:
        resp = _post(web, intent="bulk-delete", ids="[not json")
        assert "Invalid bulk delete request" in resp.text

    def test_empty_selection(self, web) -> None:
        assert "No items selected" in _post(web, intent="bulk-delete", ids="[]").text
        assert "No items selected" in _post(web, intent="bulk-delete").text


class TestFormsAndEditPage:
    def test_new_form(self, web) -> None:
        resp = web.client.get("/users/new", headers=web.auth_headers)
        assert resp.status_code == 200
        assert 'value="create"' in resp.text

    def test_duplicate_prefills_clone_email(self, web) -> None:
        uid = _add_user(web, "orig@example.com")
        resp = web.client.get(f"/users/{uid}/duplicate", headers=web.auth_headers)
        assert resp.status_code == 200
        assert 'value="clone-orig@example.com"' in resp.text

    def test_edit_page(self, web) -> None:
        uid = _add_user(web, "edit-page@example.com")
        resp = web.client.get(f"/users/{uid}", headers=web.auth_headers)
        assert resp.status_code == 200
        assert "edit-page@example.com" in resp.text

    def test_edit_page_missing_is_404(self, web) -> None:
        resp = web.client.get(f"/users/{uuid.uuid4()}", headers=web.auth_headers)
        assert resp.status_code == 404

    def test_edit_submit_redirects(self, web) -> None:
        uid = _add_user(web, "edit-submit@example.com")
        resp = _post(web, f"/users/{uid}", email="edit-done@example.com", password="")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/users"
        assert web.client.app.state.user_store.get_by_id(uid).email == "edit-done@example.com"

    def test_edit_short_password(self, web) -> None:
        uid = _add_user(web, "edit-short@example.com")
        resp = _post(web, f"/users/{uid}", email="edit-short@example.com", password="abc")
        assert resp.status_code == 200
        assert "Password must be at least 6 characters" in resp.text

    def test_edit_email_conflict(self, web) -> None:
        _add_user(web, "edit-taken@example.com")
        uid = _add_user(web, "edit-conflict@example.com")
        resp = _post(web, f"/users/{uid}", email="edit-taken@example.com")
        assert "Email already in use or update failed" in resp.text
