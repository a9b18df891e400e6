# routes/auth.py
from __future__ import annotations

import time

from flask import Blueprint, request, jsonify, g, current_app

from auth_guard import require_auth
from db import db
from errors import AuthenticationError, NotFoundError, ValidationError
from models.account import KIND_ALUMNI, KIND_FACULTY
from services import accounts
from services.otp import (
    PURPOSE_LOGIN,
    PURPOSE_REGISTER,
    PURPOSE_RESET,
    issue_otp,
    request_otp,
    verify_otp,
)
from services.tokens import issue_token

__all__ = ["auth_bp"]
auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

GENERIC_RESET_MESSAGE = "If the email exists, an OTP has been sent"


def _body() -> dict:
    return request.get_json(silent=True) or {}


def _identifier(data: dict) -> str:
    return accounts.normalize_email(data.get("identifier") or data.get("email"))


def _kind_from(data: dict, default: str | None = None) -> str | None:
    kind = (data.get("kind") or "").strip().lower() or default
    if kind and kind not in (KIND_ALUMNI, KIND_FACULTY):
        raise ValidationError("kind must be 'alumni' or 'faculty'")
    return kind


def _login_response(account):
    return jsonify(
        message="Login successful",
        token=issue_token(account),
        user=account.to_dict(),
    ), 200


# -------------------------------------------------------------------
# Middleware
# -------------------------------------------------------------------
@auth_bp.after_request
def add_no_store(resp):
    resp.headers["Cache-Control"] = "no-store"
    return resp


@auth_bp.route("/ping", methods=["GET"])
def ping():
    return jsonify(ok=True, ts=time.time()), 200


# -------------------------------------------------------------------
# Registration (alumni + faculty)
# -------------------------------------------------------------------
def _send_registration_otp(kind: str):
    account = accounts.register_account(kind, _body())
    issue_otp(account, PURPOSE_REGISTER)
    return jsonify(message="OTP sent successfully"), 200


def _verify_registration(kind: str, message: str):
    data = _body()
    email = _identifier(data)
    if not email or not data.get("otp"):
        raise ValidationError("email and otp are required")

    account = verify_otp(email, data.get("otp"), PURPOSE_REGISTER, kind=kind)
    return jsonify(message=message, user=account.to_dict()), 200


@auth_bp.route("/send-otp", methods=["POST"])
def send_otp():
    return _send_registration_otp(KIND_ALUMNI)


@auth_bp.route("/verify-otp", methods=["POST"])
def verify_otp_and_register():
    return _verify_registration(KIND_ALUMNI, "Registration successful")


@auth_bp.route("/send-otp-teacher", methods=["POST"])
def send_otp_teacher():
    return _send_registration_otp(KIND_FACULTY)


@auth_bp.route("/verify-otp-teacher", methods=["POST"])
def verify_otp_and_register_teacher():
    return _verify_registration(KIND_FACULTY, "Teacher registration successful")


# -------------------------------------------------------------------
# Passwordless login
# -------------------------------------------------------------------
def _login_otp_send(default_kind: str | None):
    data = _body()
    email = _identifier(data)
    if not email:
        raise ValidationError("identifier is required")

    try:
        request_otp(email, PURPOSE_LOGIN, kind=_kind_from(data, default_kind))
    except NotFoundError:
        current_app.logger.info("[auth] login OTP requested for unknown or unverified email")

    return jsonify(message="OTP sent"), 200


def _login_otp_verify(default_kind: str | None):
    data = _body()
    email = _identifier(data)
    if not email or not data.get("otp"):
        raise ValidationError("identifier and otp are required")

    account = verify_otp(email, data.get("otp"), PURPOSE_LOGIN, kind=_kind_from(data, default_kind))
    return _login_response(account)


@auth_bp.route("/login-otp-send", methods=["POST"])
def login_otp_send():
    return _login_otp_send(None)


@auth_bp.route("/login-otp-verify", methods=["POST"])
def login_otp_verify():
    return _login_otp_verify(None)


@auth_bp.route("/login-otp-send-teacher", methods=["POST"])
def login_otp_send_teacher():
    return _login_otp_send(KIND_FACULTY)


@auth_bp.route("/login-otp-verify-teacher", methods=["POST"])
def login_otp_verify_teacher():
    return _login_otp_verify(KIND_FACULTY)


# -------------------------------------------------------------------
# Password login + reset
# -------------------------------------------------------------------
@auth_bp.route("/login", methods=["POST"])
def login():
    data = _body()
    email = _identifier(data)
    password = data.get("password") or ""
    if not email or not password:
        raise ValidationError("email and password are required")

    account = next(
        (a for a in accounts.candidates(email, _kind_from(data))
         if a.is_verified and a.check_password(password)),
        None,
    )
    if account is None:
        raise AuthenticationError("Invalid credentials")
    return _login_response(account)


@auth_bp.route("/forgot-password", methods=["POST"])
def forgot_password():
    data = _body()
    email = _identifier(data)
    if not email:
        raise ValidationError("email is required")

    try:
        request_otp(email, PURPOSE_RESET, kind=_kind_from(data))
    except NotFoundError:
        current_app.logger.info("[auth] reset requested for unknown email")

    return jsonify(message=GENERIC_RESET_MESSAGE), 200


@auth_bp.route("/reset-password", methods=["POST"])
def reset_password():
    data = _body()
    email = _identifier(data)
    new_pw = data.get("newPassword")
    if not email or not data.get("otp") or not new_pw:
        raise ValidationError("email, otp and newPassword are required")
    if len(str(new_pw).strip()) < accounts.MIN_PASSWORD_LEN:
        raise ValidationError(f"newPassword must be at least {accounts.MIN_PASSWORD_LEN} characters")

    account = verify_otp(email, data.get("otp"), PURPOSE_RESET, kind=_kind_from(data))
    accounts.set_password(account, new_pw)
    db.session.commit()
    current_app.logger.info("[auth] password reset account=%s", account.id)
    return jsonify(message="Password updated"), 200


# -------------------------------------------------------------------
# Token-based
# -------------------------------------------------------------------
@auth_bp.route("/me", methods=["GET"])
@require_auth
def me():
    account = accounts.get_account(g.claims.id)
    return jsonify(account.to_dict()), 200


@auth_bp.route("/verify-token", methods=["GET"])
@require_auth
def verify_token():
    return jsonify(valid=True, user=g.claims.to_dict()), 200
