# services/accounts.py
"""
Account resolution and account administration.

Public API:
  - normalize_email(raw) -> str
  - find_account(email, kind=None, verified_only=False) -> Account | None
  - get_account(account_id, kind=None) -> Account
  - register_account(kind, data) -> Account
  - next_public_code(kind) -> str
  - assign_public_code(account) -> str
  - authorize_deletion(actor, target) -> None
  - delete_account(actor, account_id, kind) -> Account
  - mark_verified(account_id, kind) -> (Account, changed)
  - set_role(account_id, role) -> Account
  - list_accounts(kind=None) -> list[Account]
  - set_password(account, raw) -> None

Lookups with kind=None search the kinds in KIND_PRECEDENCE order and return
the first match. Registration only flushes (the OTP issue commits it);
admin actions commit.
"""
from __future__ import annotations

import re
from typing import Iterable

from flask import current_app
from sqlalchemy.exc import IntegrityError

from db import db
from errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from models.account import (
    Account,
    CODE_SUFFIX,
    KIND_ALUMNI,
    KIND_FACULTY,
    KINDS,
    ROLES,
)
from services.tokens import Claims, is_super_admin_email

KIND_PRECEDENCE = (KIND_ALUMNI, KIND_FACULTY)

CODE_PREFIX = "CSE"
FIRST_CODE_NUMBER = 1000
_CODE_RE = re.compile(r"^CSE(\d{4,})[AF]$")
_EMAIL_RE = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")

MIN_PASSWORD_LEN = 6

# JSON key -> (column, required)
_COMMON_FIELDS = {
    "fullName": ("full_name", True),
    "location": ("location", True),
    "phoneNumber": ("phone_number", False),
}
_KIND_FIELDS = {
    KIND_ALUMNI: {
        "batch": ("batch", True),
        "company": ("company", False),
        "position": ("position", False),
    },
    KIND_FACULTY: {
        "department": ("department", True),
        "designation": ("designation", True),
    },
}


# ---------- lookups ----------

def normalize_email(raw) -> str:
    return str(raw or "").strip().lower()


def _check_kind(kind: str) -> str:
    if kind not in KINDS:
        raise ValidationError(f"Unknown account kind: {kind!r}")
    return kind


def _kinds_for(kind: str | None) -> Iterable[str]:
    return (_check_kind(kind),) if kind else KIND_PRECEDENCE


def find_account(email, kind: str | None = None, *, verified_only: bool = False) -> Account | None:
    email = normalize_email(email)
    if not email:
        return None
    for k in _kinds_for(kind):
        q = Account.query.filter_by(email=email, kind=k)
        if verified_only:
            q = q.filter_by(is_verified=True)
        account = q.first()
        if account:
            return account
    return None


def candidates(email, kind: str | None = None) -> list[Account]:
    """All accounts for an email, in precedence order."""
    email = normalize_email(email)
    if not email:
        return []
    found = []
    for k in _kinds_for(kind):
        account = Account.query.filter_by(email=email, kind=k).first()
        if account:
            found.append(account)
    return found


def get_account(account_id, kind: str | None = None) -> Account:
    try:
        account = db.session.get(Account, int(account_id))
    except (TypeError, ValueError):
        account = None
    if not account or (kind and account.kind != kind):
        raise NotFoundError("Account not found")
    return account


def list_accounts(kind: str | None = None) -> list[Account]:
    q = Account.query
    if kind:
        q = q.filter_by(kind=_check_kind(kind))
    return q.order_by(Account.full_name.asc(), Account.id.asc()).all()


# ---------- registration ----------

def _profile_from(kind: str, data: dict) -> dict:
    fields = {**_COMMON_FIELDS, **_KIND_FIELDS[kind]}
    missing = [key for key, (_, required) in fields.items()
               if required and not str(data.get(key) or "").strip()]
    if missing:
        raise ValidationError("All required fields must be filled: " + ", ".join(missing))

    profile = {}
    for key, (column, _) in fields.items():
        value = data.get(key)
        if value is None or str(value).strip() == "":
            continue
        profile[column] = str(value).strip()

    if "batch" in profile:
        try:
            profile["batch"] = int(profile["batch"])
        except ValueError:
            raise ValidationError("batch must be a year, e.g. 2019")
    return profile


def register_account(kind: str, data: dict) -> Account:
    """
    Find-or-create the account for a registration attempt.

    An unverified account has its profile overwritten (the user restarts
    registration). A verified account is left untouched and ConflictError
    is raised.
    """
    _check_kind(kind)
    email = normalize_email(data.get("email"))
    if not email:
        raise ValidationError("All required fields must be filled: email")
    if not _EMAIL_RE.fullmatch(email):
        raise ValidationError("Invalid email address")

    profile = _profile_from(kind, data)

    account = find_account(email, kind)
    if account and account.is_verified:
        current_app.logger.info("[accounts] re-registration refused for verified account=%s", account.id)
        raise ConflictError("An account with this email is already registered. Please log in.")

    if account is None:
        account = Account(kind=kind, email=email, is_verified=False)
        db.session.add(account)
        current_app.logger.info("[accounts] new %s registration", kind)

    # Drop optional fields that were not resubmitted.
    for column, _ in {**_COMMON_FIELDS, **_KIND_FIELDS[kind]}.values():
        setattr(account, column, profile.get(column))

    try:
        db.session.flush()
    except IntegrityError as e:
        # Concurrent first registration for the same email+kind.
        db.session.rollback()
        raise ConflictError("Registration already in progress for this email. Please retry.") from e
    return account


# ---------- public codes ----------

def _code_number(code: str | None) -> int:
    m = _CODE_RE.match(code or "")
    return int(m.group(1)) if m else 0


def next_public_code(kind: str) -> str:
    """Next code in the sequence shared by every kind."""
    _check_kind(kind)
    rows = db.session.query(Account.public_code).filter(Account.public_code.isnot(None)).all()
    highest = max([FIRST_CODE_NUMBER - 1] + [_code_number(c) for (c,) in rows])
    return f"{CODE_PREFIX}{highest + 1:04d}{CODE_SUFFIX[kind]}"


def assign_public_code(account: Account) -> str:
    """Assign a code once; an existing code is never replaced."""
    if not account.public_code:
        account.public_code = next_public_code(account.kind)
        current_app.logger.info("[accounts] account=%s assigned code=%s", account.id, account.public_code)
    return account.public_code


# ---------- admin actions ----------

def authorize_deletion(actor: Claims, target: Account) -> None:
    """
    Super-admin may delete anyone. An admin may delete only unverified
    accounts. Everyone else is refused.
    """
    if is_super_admin_email(actor.email):
        return
    if actor.role == "admin":
        if target.is_verified:
            raise AuthorizationError("Admins can only delete unverified users.")
        return
    raise AuthorizationError("Access denied.")


def delete_account(actor: Claims, account_id, kind: str | None = None) -> Account:
    account = get_account(account_id, kind)
    authorize_deletion(actor, account)
    db.session.delete(account)
    db.session.commit()
    current_app.logger.info(
        "[accounts] account=%s (%s) deleted by uid=%s role=%s", account.id, account.kind, actor.id, actor.role
    )
    return account


def mark_verified(account_id, kind: str | None = None) -> tuple[Account, bool]:
    """Returns (account, changed); changed is False when it was already verified."""
    account = get_account(account_id, kind)
    changed = not account.is_verified
    account.is_verified = True
    assign_public_code(account)
    db.session.commit()
    return account, changed


def set_role(account_id, role) -> Account:
    role = str(role or "").strip().lower()
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")

    account = get_account(account_id)
    if is_super_admin_email(account.email):
        raise ValidationError("The super admin's role cannot be changed")

    account.role = role
    db.session.commit()
    current_app.logger.info("[accounts] account=%s role -> %s", account.id, role)
    return account


def set_password(account: Account, raw) -> None:
    raw = str(raw or "")
    if len(raw.strip()) < MIN_PASSWORD_LEN:
        raise ValidationError(f"newPassword must be at least {MIN_PASSWORD_LEN} characters")
    account.set_password(raw)
