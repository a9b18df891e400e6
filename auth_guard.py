# auth_guard.py
from __future__ import annotations

from functools import wraps

from flask import request, g, current_app

from errors import AuthenticationError, AuthorizationError
from services.tokens import Claims, SUPER_ADMIN_ROLE, verify_token, is_super_admin_email

__all__ = [
    "require_auth",
    "require_admin",
    "require_super_admin",
    "is_super_admin",
    "is_admin",
]


def _bearer_token() -> str:
    auth = request.headers.get("Authorization", "")
    if not auth:
        raise AuthenticationError("Authentication failed: No token provided.")

    parts = auth.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise AuthenticationError("Authentication failed: Expected 'Bearer <token>'.")
    return parts[1]


def is_super_admin(claims: Claims) -> bool:
    """Strict check: the super-admin role marker AND the super-admin identity."""
    return claims.role == SUPER_ADMIN_ROLE and is_super_admin_email(claims.email)


def is_admin(claims: Claims) -> bool:
    """Admin role, or the super-admin identity regardless of role."""
    return claims.role == "admin" or is_super_admin_email(claims.email)


def authenticate() -> Claims:
    """Verify the bearer token and attach its claims to g.claims."""
    claims = verify_token(_bearer_token())
    g.claims = claims  # type: ignore[attr-defined]

    current_app.logger.info(
        "[guard] %s %s uid=%s role=%s ip=%s",
        request.method,
        request.path,
        claims.id,
        claims.role,
        request.remote_addr,
    )
    return claims


def require_auth(f):
    """Any request carrying a valid token."""
    @wraps(f)
    def wrapped(*args, **kwargs):
        authenticate()
        return f(*args, **kwargs)

    return wrapped


def require_admin(f):
    @wraps(f)
    def wrapped(*args, **kwargs):
        claims = authenticate()
        if not is_admin(claims):
            raise AuthorizationError("Authorization failed: Admin access required.")
        return f(*args, **kwargs)

    return wrapped


def require_super_admin(f):
    @wraps(f)
    def wrapped(*args, **kwargs):
        claims = authenticate()
        if not is_super_admin(claims):
            raise AuthorizationError("Authorization failed: Super Admin access required.")
        return f(*args, **kwargs)

    return wrapped
