# routes/accounts.py
from flask import Blueprint, jsonify, g, current_app

from auth_guard import require_auth, require_admin
from models.account import KIND_ALUMNI, KIND_FACULTY
from services import accounts
from services.notify import send_verified_email


def _make_directory_bp(name: str, kind: str, label: str) -> Blueprint:
    """Directory endpoints for one account kind: list, verify, delete."""
    bp = Blueprint(name, __name__)

    @bp.route("/", methods=["GET"])
    @require_auth
    def list_profiles():
        rows = accounts.list_accounts(kind)
        return jsonify([a.to_dict() for a in rows]), 200

    @bp.route("/<int:account_id>/verify", methods=["PATCH"])
    @require_admin
    def verify_profile(account_id: int):
        account, changed = accounts.mark_verified(account_id, kind)
        current_app.logger.info(
            "[%s] account=%s verified by uid=%s", name, account.id, g.claims.id
        )
        if changed:
            send_verified_email(account)
        return jsonify(account.to_dict()), 200

    @bp.route("/<int:account_id>", methods=["DELETE"])
    @require_auth
    def delete_profile(account_id: int):
        accounts.delete_account(g.claims, account_id, kind)
        return jsonify(message=f"{label} profile deleted successfully"), 200

    return bp


alumni_bp = _make_directory_bp("alumni", KIND_ALUMNI, "Alumni")
teachers_bp = _make_directory_bp("teachers", KIND_FACULTY, "Teacher")
