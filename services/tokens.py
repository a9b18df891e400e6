# services/tokens.py
"""
Bearer token issue/verify.

Tokens are HS256 JWTs carrying exactly three identity claims (id, email,
role) plus iat/exp. Verification is stateless: there is no revocation list,
so a token stays valid for its whole lifetime even if the account's role or
password changes afterwards.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

from errors import ExpiredError, MalformedError, IncompleteClaimsError
from models.account import Account

__all__ = [
    "Claims",
    "SUPER_ADMIN_ROLE",
    "issue_token",
    "verify_token",
    "is_super_admin_email",
]

ALGORITHM = "HS256"
SUPER_ADMIN_ROLE = "superadmin"


@dataclass(frozen=True)
class Claims:
    id: int | str
    email: str
    role: str

    def to_dict(self) -> dict:
        return {"id": self.id, "email": self.email, "role": self.role}


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _secret() -> str:
    return current_app.config["JWT_SECRET"]


def is_super_admin_email(email: str | None) -> bool:
    target = current_app.config.get("SUPER_ADMIN_EMAIL") or ""
    return bool(target) and (email or "").strip().lower() == target


def claims_for(account: Account) -> Claims:
    role = SUPER_ADMIN_ROLE if is_super_admin_email(account.email) else account.role
    return Claims(id=account.id, email=account.email, role=role)


def issue_token(account: Account) -> str:
    claims = claims_for(account)
    now = _now_utc()
    payload = {
        **claims.to_dict(),
        "iat": now,
        "exp": now + timedelta(days=current_app.config["JWT_TTL_DAYS"]),
    }
    return jwt.encode(payload, _secret(), algorithm=ALGORITHM)


def verify_token(token: str) -> Claims:
    try:
        payload = jwt.decode(
            token,
            _secret(),
            algorithms=[ALGORITHM],
            options={"require": ["exp"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise ExpiredError() from e
    except jwt.InvalidTokenError as e:
        raise MalformedError() from e

    # "_id" is accepted for tokens minted by older clients.
    uid = payload.get("id", payload.get("_id"))
    email = payload.get("email")
    role = payload.get("role")
    if uid in (None, "") or not email or not role:
        raise IncompleteClaimsError()

    return Claims(id=uid, email=email, role=role)
