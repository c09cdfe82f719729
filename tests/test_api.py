"""
HTTP API tests.

Covers:
    - Session login / logout / me / change-password
    - Session guard (401) and admin role gate (403)
    - Change request submit, list, detail, review workflow
    - Admin user management and department endpoints
    - Health probes and JSON error handlers
"""

import pytest


def _submit(client, payload, **overrides):
    res = client.post("/api/v1/change-requests", json=payload(**overrides))
    assert res.status_code == 201, res.get_json()
    return res.get_json()["data"]


# ═════════════════════════════════════════════════════════════════════════
# AUTH
# ═════════════════════════════════════════════════════════════════════════

class TestAuth:
    def test_login_sets_session(self, client):
        res = client.post("/api/v1/auth/login", json={"id": "Admin", "password": "adminpassword"})
        assert res.status_code == 200
        assert res.get_json()["data"]["role"] == "admin"

        me = client.get("/api/v1/auth/me")
        assert me.status_code == 200
        assert me.get_json()["user"] == {"id": "admin", "role": "admin", "name": "Admin"}

    def test_login_bad_password(self, client):
        res = client.post("/api/v1/auth/login", json={"id": "admin", "password": "wrong"})
        assert res.status_code == 401
        body = res.get_json()
        assert body["code"] == "ERR_AUTH_FAILED"
        assert body["error"] == "Invalid User ID or Password. Please try again."

    def test_login_missing_fields(self, client):
        res = client.post("/api/v1/auth/login", json={"id": "admin"})
        assert res.status_code == 400

    def test_logout_clears_session(self, admin_client):
        assert admin_client.post("/api/v1/auth/logout").status_code == 200
        assert admin_client.get("/api/v1/auth/me").status_code == 401

    def test_requires_session(self, client):
        res = client.get("/api/v1/change-requests")
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_AUTH_REQUIRED"

    def test_change_password(self, alice_client, client):
        res = alice_client.post("/api/v1/auth/change-password", json={
            "current_password": "password123",
            "new_password": "password456",
            "confirm_password": "password456",
        })
        assert res.status_code == 200
        assert res.get_json()["message"] == "Password updated successfully!"

        res = client.post("/api/v1/auth/login", json={"id": "asmith", "password": "password456"})
        assert res.status_code == 200

    def test_change_password_wrong_current(self, alice_client):
        res = alice_client.post("/api/v1/auth/change-password", json={
            "current_password": "nope",
            "new_password": "password456",
        })
        assert res.status_code == 401
        assert res.get_json()["error"] == "Current password does not match."

    def test_form_post_rejected(self, admin_client):
        res = admin_client.post(
            "/api/v1/admin/departments",
            data="name=Legal",
            content_type="application/x-www-form-urlencoded",
        )
        assert res.status_code == 415


# ═════════════════════════════════════════════════════════════════════════
# CHANGE REQUESTS
# ═════════════════════════════════════════════════════════════════════════

class TestChangeRequests:
    def test_submit(self, alice_client, payload):
        res = alice_client.post("/api/v1/change-requests", json=payload(requester="Someone Else"))
        assert res.status_code == 201
        data = res.get_json()["data"]
        assert data["status"] == "Pending"
        assert data["requester"] == "Alice Smith"
        assert data["summary"] == "Fake summary."
        assert data["requestDate"].endswith("Z")
        assert "remarks" not in data

    def test_submit_incomplete(self, alice_client, payload):
        res = alice_client.post("/api/v1/change-requests", json=payload(description=""))
        assert res.status_code == 400
        assert res.get_json()["details"]["description"] == "Description of change is required."

    def test_list_visibility_and_title(self, alice_client, bob_client, admin_client, payload):
        _submit(alice_client, payload, title="From Alice")
        _submit(bob_client, payload, title="From Bob")

        res = alice_client.get("/api/v1/change-requests")
        body = res.get_json()
        assert body["title"] == "Alice Smith's Requests"
        assert [r["title"] for r in body["items"]] == ["From Alice"]

        body = admin_client.get("/api/v1/change-requests").get_json()
        assert body["title"] == "All Requests"
        assert body["total"] == 2

    def test_list_newest_first(self, admin_client, payload):
        first = _submit(admin_client, payload, title="first")
        second = _submit(admin_client, payload, title="second")
        items = admin_client.get("/api/v1/change-requests").get_json()["items"]
        ids = [r["id"] for r in items]
        assert set(ids) == {first["id"], second["id"]}
        dates = [r["requestDate"] for r in items]
        assert dates == sorted(dates, reverse=True)

    def test_list_status_filter(self, admin_client, payload):
        cr = _submit(admin_client, payload)
        _submit(admin_client, payload)
        admin_client.post(f"/api/v1/change-requests/{cr['id']}/review")

        body = admin_client.get("/api/v1/change-requests?status=Reviewed").get_json()
        assert body["title"] == "Reviewed Requests"
        assert [r["id"] for r in body["items"]] == [cr["id"]]

    def test_list_bad_status(self, admin_client):
        assert admin_client.get("/api/v1/change-requests?status=Bogus").status_code == 400

    def test_detail_hidden_from_other_user(self, alice_client, bob_client, payload):
        cr = _submit(alice_client, payload)
        assert alice_client.get(f"/api/v1/change-requests/{cr['id']}").status_code == 200
        assert bob_client.get(f"/api/v1/change-requests/{cr['id']}").status_code == 404

    def test_requesters(self, alice_client):
        res = alice_client.get("/api/v1/requesters")
        assert res.get_json()["requesters"] == [
            "Alice Smith", "Bob Johnson", "Charlie Brown", "Diana Prince",
        ]


class TestReviewWorkflow:
    @pytest.mark.parametrize("action", ["review", "approve", "reject"])
    def test_user_forbidden(self, alice_client, payload, action):
        cr = _submit(alice_client, payload)
        res = alice_client.post(f"/api/v1/change-requests/{cr['id']}/{action}",
                                json={"remarks": "x"})
        assert res.status_code == 403
        assert res.get_json()["code"] == "ERR_FORBIDDEN"

    def test_review_then_approve(self, admin_client, payload):
        cr = _submit(admin_client, payload)
        res = admin_client.post(f"/api/v1/change-requests/{cr['id']}/review")
        assert res.status_code == 200
        assert res.get_json()["data"]["new_status"] == "Reviewed"

        res = admin_client.post(f"/api/v1/change-requests/{cr['id']}/approve", json={})
        body = res.get_json()
        assert body["data"]["new_status"] == "Approved"
        row = next(r for r in body["snapshot"]["requests"] if r["id"] == cr["id"])
        assert row["status"] == "Approved"
        assert "remarks" not in row

    def test_reject_requires_remarks(self, admin_client, payload):
        cr = _submit(admin_client, payload)
        res = admin_client.post(f"/api/v1/change-requests/{cr['id']}/reject", json={"remarks": " "})
        assert res.status_code == 400
        assert res.get_json()["error"] == "Rejection remarks are required."

    def test_reject_with_remarks(self, admin_client, payload):
        cr = _submit(admin_client, payload)
        res = admin_client.post(f"/api/v1/change-requests/{cr['id']}/reject",
                                json={"remarks": "insufficient testing"})
        assert res.status_code == 200
        detail = admin_client.get(f"/api/v1/change-requests/{cr['id']}").get_json()
        assert detail["status"] == "Rejected"
        assert detail["remarks"] == "insufficient testing"

    def test_approve_terminal_is_noop(self, admin_client, payload):
        cr = _submit(admin_client, payload)
        admin_client.post(f"/api/v1/change-requests/{cr['id']}/reject", json={"remarks": "no"})
        res = admin_client.post(f"/api/v1/change-requests/{cr['id']}/approve", json={})
        assert res.status_code == 200
        assert res.get_json()["data"]["changed"] is False


# ═════════════════════════════════════════════════════════════════════════
# ADMIN
# ═════════════════════════════════════════════════════════════════════════

class TestAdminUsers:
    def test_user_management_forbidden_for_users(self, alice_client):
        assert alice_client.get("/api/v1/admin/users").status_code == 403
        res = alice_client.post("/api/v1/admin/users",
                                json={"name": "X", "id": "x", "password": "password123"})
        assert res.status_code == 403

    def test_list_users(self, admin_client):
        items = admin_client.get("/api/v1/admin/users").get_json()["items"]
        assert [u["id"] for u in items] == ["asmith", "bjohnson", "cbrown", "dprince"]

    def test_create_user_and_login(self, admin_client, client):
        res = admin_client.post("/api/v1/admin/users",
                                json={"name": "Grace Hopper", "id": "GHopper", "password": "cobol1959"})
        assert res.status_code == 201
        assert res.get_json()["data"] == {"id": "ghopper", "name": "Grace Hopper", "role": "user"}

        res = client.post("/api/v1/auth/login", json={"id": "ghopper", "password": "cobol1959"})
        assert res.status_code == 200

    def test_create_duplicate_user(self, admin_client):
        res = admin_client.post("/api/v1/admin/users",
                                json={"name": "A", "id": "ASMITH", "password": "password123"})
        assert res.status_code == 409

    def test_create_user_missing_fields(self, admin_client):
        res = admin_client.post("/api/v1/admin/users", json={"name": "A"})
        assert res.status_code == 400

    def test_set_password(self, admin_client, client):
        res = admin_client.put("/api/v1/admin/users/dprince/password",
                               json={"new_password": "wonder1941"})
        assert res.status_code == 200
        assert res.get_json()["message"] == "Password for Diana Prince updated successfully!"
        assert client.post("/api/v1/auth/login",
                           json={"id": "dprince", "password": "wonder1941"}).status_code == 200

    def test_set_password_unknown_user(self, admin_client):
        res = admin_client.put("/api/v1/admin/users/ghost/password",
                               json={"new_password": "wonder1941"})
        assert res.status_code == 404

    def test_delete_user(self, admin_client):
        assert admin_client.delete("/api/v1/admin/users/cbrown").status_code == 200
        ids = [u["id"] for u in admin_client.get("/api/v1/admin/users").get_json()["items"]]
        assert "cbrown" not in ids


class TestAdminDepartments:
    def test_list_for_any_user(self, alice_client):
        body = alice_client.get("/api/v1/admin/departments").get_json()
        assert "Engineering" in [d["name"] for d in body["departments"]]

    def test_add_department(self, admin_client):
        res = admin_client.post("/api/v1/admin/departments", json={"name": "Legal"})
        assert res.status_code == 201
        assert admin_client.post("/api/v1/admin/departments", json={"name": "legal"}).status_code == 409

    def test_add_department_forbidden_for_users(self, alice_client):
        res = alice_client.post("/api/v1/admin/departments", json={"name": "Legal"})
        assert res.status_code == 403

    def test_delete_in_use(self, admin_client, payload):
        _submit(admin_client, payload, department="Finance")
        res = admin_client.delete("/api/v1/admin/departments/Finance")
        assert res.status_code == 409

    def test_delete_unknown(self, admin_client):
        assert admin_client.delete("/api/v1/admin/departments/Nowhere").status_code == 404

    def test_delete_unused(self, admin_client):
        assert admin_client.delete("/api/v1/admin/departments/Operations").status_code == 200


# ═════════════════════════════════════════════════════════════════════════
# MALFORMED INPUT
# ═════════════════════════════════════════════════════════════════════════

class TestMalformedInput:
    def test_login_numeric_id(self, client):
        res = client.post("/api/v1/auth/login", json={"id": 12345, "password": "password123"})
        assert res.status_code == 400
        assert res.get_json()["details"] == {"id": "must be a string"}

    def test_login_numeric_password(self, client):
        res = client.post("/api/v1/auth/login", json={"id": "asmith", "password": 12345678})
        assert res.status_code == 400

    def test_login_non_object_body(self, client):
        res = client.post("/api/v1/auth/login", json=["asmith", "password123"])
        assert res.status_code == 400

    def test_login_password_over_bcrypt_limit(self, client):
        res = client.post("/api/v1/auth/login", json={"id": "asmith", "password": "p" * 200})
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_AUTH_FAILED"

    def test_create_user_password_over_bcrypt_limit(self, admin_client):
        res = admin_client.post("/api/v1/admin/users",
                                json={"name": "Long", "id": "longpw", "password": "a" * 72 + "SECRET-TAIL"})
        assert res.status_code == 400

    def test_create_user_numeric_fields(self, admin_client):
        res = admin_client.post("/api/v1/admin/users", json={"name": ["x"], "id": 7, "password": "password123"})
        assert res.status_code == 400

    def test_change_password_numeric_new(self, alice_client):
        res = alice_client.post("/api/v1/auth/change-password",
                                json={"current_password": "password123", "new_password": 123456789})
        assert res.status_code == 400

    def test_submit_numeric_department(self, alice_client, payload):
        res = alice_client.post("/api/v1/change-requests", json=payload(department=42))
        assert res.status_code == 400

    def test_submit_numeric_title(self, alice_client, payload):
        res = alice_client.post("/api/v1/change-requests", json=payload(title=99))
        assert res.status_code == 400
        assert "title" in res.get_json()["details"]

    def test_reject_numeric_remarks(self, admin_client, payload):
        cr = _submit(admin_client, payload)
        res = admin_client.post(f"/api/v1/change-requests/{cr['id']}/reject", json={"remarks": 5})
        assert res.status_code == 400

    def test_add_department_numeric_name(self, admin_client):
        res = admin_client.post("/api/v1/admin/departments", json={"name": 3})
        assert res.status_code == 400


# ═════════════════════════════════════════════════════════════════════════
# HEALTH & ERRORS
# ═════════════════════════════════════════════════════════════════════════

class TestHealth:
    def test_ready(self, client):
        res = client.get("/api/v1/health/ready")
        assert res.status_code == 200
        assert "X-Request-ID" in res.headers

    def test_live(self, client):
        body = client.get("/api/v1/health/live").get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["schema_version"] == 1
        assert body["checks"]["summarizer"]["providers"] == ["local"]

    def test_unknown_api_route_is_json_404(self, admin_client):
        res = admin_client.get("/api/v1/nothing-here")
        assert res.status_code == 404
        assert res.get_json()["error"] == "Not found"
