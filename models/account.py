# models/account.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash

from db import db

KIND_ALUMNI = "alumni"
KIND_FACULTY = "faculty"
KINDS = (KIND_ALUMNI, KIND_FACULTY)

# Suffix letter of the public code, one per kind.
CODE_SUFFIX = {KIND_ALUMNI: "A", KIND_FACULTY: "F"}

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)


class Account(db.Model):
    __tablename__ = "accounts"
    __table_args__ = (
        db.UniqueConstraint("email", "kind", name="uq_accounts_email_kind"),
    )

    id              = db.Column(db.Integer, primary_key=True, autoincrement=True)
    kind            = db.Column(db.String(16), nullable=False, index=True)
    email           = db.Column(db.String(254), nullable=False, index=True)
    full_name       = db.Column(db.String(160), nullable=False)
    phone_number    = db.Column(db.String(32), nullable=True)
    location        = db.Column(db.String(160), nullable=False)

    # alumni profile
    batch           = db.Column(db.Integer, nullable=True)
    company         = db.Column(db.String(160), nullable=True)
    position        = db.Column(db.String(160), nullable=True)

    # faculty profile
    department      = db.Column(db.String(160), nullable=True)
    designation     = db.Column(db.String(160), nullable=True)

    public_code     = db.Column(db.String(16), nullable=True, unique=True)

    password_hash   = db.Column(db.String(255), nullable=True)
    otp_hash        = db.Column(db.String(64), nullable=True)   # sha256 hex string
    otp_expires_at  = db.Column(db.DateTime, nullable=True)
    is_verified     = db.Column(db.Boolean, nullable=False, default=False)
    role            = db.Column(db.String(16), nullable=False, default=ROLE_USER)

    created_at      = db.Column(db.DateTime, server_default=func.now(), nullable=False)
    updated_at      = db.Column(db.DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    # ── Helpers ─────────────────────────────────────────────────────────────
    def set_password(self, raw: str) -> None:
        self.password_hash = generate_password_hash(raw)

    def check_password(self, raw: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, raw or "")

    def set_otp(self, code_hash: str, expires_at: datetime) -> None:
        self.otp_hash = code_hash
        self.otp_expires_at = expires_at

    def clear_otp(self) -> None:
        self.otp_hash = None
        self.otp_expires_at = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "kind": self.kind,
            "email": self.email,
            "fullName": self.full_name,
            "phoneNumber": self.phone_number,
            "location": self.location,
            "publicCode": self.public_code,
            "isVerified": bool(self.is_verified),
            "role": self.role,
        }
        if self.kind == KIND_ALUMNI:
            data.update(batch=self.batch, company=self.company, position=self.position)
        else:
            data.update(department=self.department, designation=self.designation)
        return data

    def __repr__(self) -> str:
        return f"<Account {self.id} {self.kind} {self.email}>"
