# routes/admin.py
from flask import Blueprint, request, jsonify, g, current_app

from auth_guard import require_super_admin
from errors import ValidationError
from services import accounts

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.route("/users/all", methods=["GET"])
@require_super_admin
def all_users():
    kind = (request.args.get("kind") or "").strip().lower() or None
    rows = accounts.list_accounts(kind)
    return jsonify([a.to_dict() for a in rows]), 200


@admin_bp.route("/users/<int:account_id>/role", methods=["PATCH"])
@require_super_admin
def update_role(account_id: int):
    data = request.get_json(silent=True) or {}
    if "role" not in data:
        raise ValidationError("role is required")

    account = accounts.set_role(account_id, data["role"])
    current_app.logger.info("[admin] uid=%s set role=%s on account=%s", g.claims.id, account.role, account.id)
    return jsonify(message="Role updated", user=account.to_dict()), 200
