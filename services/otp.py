# services/otp.py
"""
One-time passwords.

Each account holds at most one active OTP (hash + expiry) shared by every
purpose, so issuing a new code invalidates the previous one. Codes are
stored as peppered SHA-256 and are single-use: a successful verification
clears both fields in the same commit.
"""
from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta, timezone

from flask import current_app
from sqlalchemy.exc import IntegrityError

from db import db
from errors import ConflictError, InvalidOtpError, NotFoundError, ValidationError
from models.account import Account
from services import accounts
from services.notify import send_otp_email, send_verified_email

__all__ = [
    "PURPOSES",
    "issue_otp",
    "request_otp",
    "verify_otp",
    "generate_code",
]

PURPOSE_REGISTER = "register"
PURPOSE_LOGIN = "login"
PURPOSE_RESET = "reset"
PURPOSES = (PURPOSE_REGISTER, PURPOSE_LOGIN, PURPOSE_RESET)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(ts: datetime) -> datetime:
    # Naive datetimes from the DB are UTC.
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def _check_purpose(purpose: str) -> str:
    if purpose not in PURPOSES:
        raise ValidationError(f"Unknown OTP purpose: {purpose!r}")
    return purpose


def generate_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def _hash_code(code: str) -> str:
    pepper = current_app.config.get("OTP_PEPPER") or ""
    return hashlib.sha256((pepper + code).encode("utf-8")).hexdigest()


def _otp_matches(account: Account, code: str, now: datetime) -> bool:
    if not account.otp_hash or not account.otp_expires_at:
        return False
    if now >= _as_utc(account.otp_expires_at):
        return False
    return secrets.compare_digest(account.otp_hash, _hash_code(code))


def issue_otp(account: Account, purpose: str) -> str:
    """
    Generate a code, persist hash+expiry on the account and deliver it.
    Returns the code for in-process use only; it never goes into a response.
    Raises DependencyError when delivery fails.
    """
    _check_purpose(purpose)
    code = generate_code()
    expires = _now_utc() + timedelta(minutes=current_app.config["OTP_TTL_MINUTES"])

    account.set_otp(_hash_code(code), expires)
    db.session.commit()
    current_app.logger.info("[otp] issued purpose=%s account=%s kind=%s", purpose, account.id, account.kind)

    send_otp_email(account, code, purpose=purpose)
    return code


def request_otp(email, purpose: str, kind: str | None = None) -> str:
    """
    Issue a login/reset OTP for an existing account.
    Login only considers verified accounts. Raises NotFoundError otherwise.
    """
    _check_purpose(purpose)
    if purpose == PURPOSE_REGISTER:
        raise ValidationError("Registration OTPs are issued by the registration flow")

    account = accounts.find_account(email, kind, verified_only=(purpose == PURPOSE_LOGIN))
    if account is None:
        raise NotFoundError("Account not found or not yet verified")
    return issue_otp(account, purpose)


def verify_otp(email, code, purpose: str, kind: str | None = None) -> Account:
    """
    Consume an OTP. The first account, in kind precedence order, whose stored
    code matches and has not expired wins. Every failure is InvalidOtpError.

    Registration additionally marks the account verified and assigns its
    public code; login requires an already verified account.
    """
    _check_purpose(purpose)
    code = str(code or "").strip()
    if not code:
        raise InvalidOtpError()

    now = _now_utc()
    account = next(
        (a for a in accounts.candidates(email, kind) if _otp_matches(a, code, now)),
        None,
    )
    if account is None or (purpose == PURPOSE_LOGIN and not account.is_verified):
        current_app.logger.info("[otp] verify failed purpose=%s", purpose)
        raise InvalidOtpError()

    account.clear_otp()
    first_verification = purpose == PURPOSE_REGISTER and not account.is_verified
    if purpose == PURPOSE_REGISTER:
        account.is_verified = True
        accounts.assign_public_code(account)

    try:
        db.session.commit()
    except IntegrityError as e:
        # A concurrent registration took the same public code; the OTP stays valid.
        db.session.rollback()
        current_app.logger.warning("[otp] code assignment collided account=%s: %s", account.id, e)
        raise ConflictError("Could not complete registration. Please try again.") from e

    current_app.logger.info("[otp] verified purpose=%s account=%s", purpose, account.id)

    if first_verification:
        send_verified_email(account)
    return account
