"""Directory (/api/alumni, /api/teachers) and super-admin (/api/admin) endpoints."""
from __future__ import annotations

from conftest import SUPER_ADMIN, reload
from models.account import KIND_FACULTY, ROLE_ADMIN


class TestDirectory:
    def test_list_requires_auth(self, client):
        assert client.get("/api/alumni/").status_code == 401

    def test_list_by_kind(self, client, make_account, auth_header):
        me = make_account("me@x.com")
        make_account("prof@x.com", kind=KIND_FACULTY)

        alumni = client.get("/api/alumni/", headers=auth_header(me)).get_json()
        teachers = client.get("/api/teachers/", headers=auth_header(me)).get_json()
        assert [a["email"] for a in alumni] == ["me@x.com"]
        assert [t["email"] for t in teachers] == ["prof@x.com"]

    def test_user_cannot_verify(self, client, make_account, auth_header):
        me = make_account("me@x.com")
        target = make_account("new@x.com", verified=False)
        resp = client.patch(f"/api/alumni/{target.id}/verify", headers=auth_header(me))
        assert resp.status_code == 403

    def test_admin_verifies_and_assigns_code(self, client, make_account, auth_header, outbox):
        admin = make_account("adm@x.com", role=ROLE_ADMIN)
        target = make_account("new@x.com", kind=KIND_FACULTY, verified=False)

        resp = client.patch(f"/api/teachers/{target.id}/verify", headers=auth_header(admin))
        assert resp.status_code == 200
        assert resp.get_json()["publicCode"] == "CSE1000F"
        assert outbox[-1]["to"] == "new@x.com"

    def test_reverify_sends_no_second_email(self, client, make_account, auth_header, outbox):
        admin = make_account("adm@x.com", role=ROLE_ADMIN)
        target = make_account("new@x.com", verified=False)

        first = client.patch(f"/api/alumni/{target.id}/verify", headers=auth_header(admin))
        again = client.patch(f"/api/alumni/{target.id}/verify", headers=auth_header(admin))
        assert first.status_code == again.status_code == 200
        assert again.get_json()["publicCode"] == first.get_json()["publicCode"]
        assert [m["to"] for m in outbox] == ["new@x.com"]

    def test_verify_survives_mail_failure(self, client, make_account, auth_header, monkeypatch):
        def _boom(**kwargs):
            raise RuntimeError("smtp down")

        monkeypatch.setattr("services.notify.send_email", _boom)
        admin = make_account("adm@x.com", role=ROLE_ADMIN)
        target = make_account("new@x.com", verified=False)

        resp = client.patch(f"/api/alumni/{target.id}/verify", headers=auth_header(admin))
        assert resp.status_code == 200
        assert reload(target.id).is_verified is True

    def test_wrong_kind_is_404(self, client, make_account, auth_header):
        admin = make_account("adm@x.com", role=ROLE_ADMIN)
        target = make_account("new@x.com", verified=False)
        resp = client.patch(f"/api/teachers/{target.id}/verify", headers=auth_header(admin))
        assert resp.status_code == 404


class TestDeletion:
    def test_admin_cannot_delete_verified(self, client, make_account, auth_header):
        admin = make_account("adm@x.com", role=ROLE_ADMIN)
        target = make_account("peer@x.com")
        resp = client.delete(f"/api/alumni/{target.id}", headers=auth_header(admin))
        assert resp.status_code == 403
        assert reload(target.id) is not None

    def test_admin_deletes_unverified(self, client, make_account, auth_header):
        admin = make_account("adm@x.com", role=ROLE_ADMIN)
        target = make_account("pending@x.com", verified=False)
        resp = client.delete(f"/api/alumni/{target.id}", headers=auth_header(admin))
        assert resp.status_code == 200
        assert reload(target.id) is None

    def test_super_admin_deletes_verified(self, client, make_account, auth_header):
        root = make_account(SUPER_ADMIN)
        target = make_account("prof@x.com", kind=KIND_FACULTY)
        resp = client.delete(f"/api/teachers/{target.id}", headers=auth_header(root))
        assert resp.status_code == 200
        assert resp.get_json()["message"] == "Teacher profile deleted successfully"

    def test_user_cannot_delete(self, client, make_account, auth_header):
        me = make_account("me@x.com")
        target = make_account("pending@x.com", verified=False)
        resp = client.delete(f"/api/alumni/{target.id}", headers=auth_header(me))
        assert resp.status_code == 403

    def test_missing_account(self, client, make_account, auth_header):
        root = make_account(SUPER_ADMIN)
        assert client.delete("/api/alumni/9999", headers=auth_header(root)).status_code == 404


class TestAdmin:
    def test_admin_is_not_super_admin(self, client, make_account, auth_header):
        admin = make_account("adm@x.com", role=ROLE_ADMIN)
        assert client.get("/api/admin/users/all", headers=auth_header(admin)).status_code == 403

    def test_list_all(self, client, make_account, auth_header):
        root = make_account(SUPER_ADMIN)
        make_account("prof@x.com", kind=KIND_FACULTY)
        resp = client.get("/api/admin/users/all", headers=auth_header(root))
        assert resp.status_code == 200
        assert {u["email"] for u in resp.get_json()} == {SUPER_ADMIN, "prof@x.com"}

    def test_promote_user(self, client, make_account, auth_header):
        root = make_account(SUPER_ADMIN)
        target = make_account("me@x.com")
        resp = client.patch(f"/api/admin/users/{target.id}/role", json={"role": "admin"}, headers=auth_header(root))
        assert resp.status_code == 200
        assert reload(target.id).role == ROLE_ADMIN

    def test_no_self_escalation(self, client, make_account, auth_header):
        me = make_account("me@x.com")
        resp = client.patch(f"/api/admin/users/{me.id}/role", json={"role": "admin"}, headers=auth_header(me))
        assert resp.status_code == 403
        assert reload(me.id).role == "user"

    def test_role_required(self, client, make_account, auth_header):
        root = make_account(SUPER_ADMIN)
        resp = client.patch(f"/api/admin/users/{root.id}/role", json={}, headers=auth_header(root))
        assert resp.status_code == 400
