from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

import pytest

from app import create_app
from config import TestingConfig
from db import db
from models.account import Account, KIND_ALUMNI, ROLE_USER
from services.tokens import issue_token

SUPER_ADMIN = TestingConfig.SUPER_ADMIN_EMAIL


@pytest.fixture()
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


class Outbox(list):
    def codes(self) -> list[str]:
        return [m for msg in self for m in re.findall(r"\b(\d{6})\b", msg["text"])]

    def last_code(self) -> str:
        return self.codes()[-1]


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    sent = Outbox()

    def _record(*, to, subject, html="", text=""):
        sent.append({"to": to, "subject": subject, "html": html, "text": text})

    monkeypatch.setattr("services.notify.send_email", _record)
    return sent


class Clock:
    def __init__(self):
        self.now = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def clock(monkeypatch):
    c = Clock()
    monkeypatch.setattr("services.otp._now_utc", lambda: c.now)
    return c


@pytest.fixture()
def make_account(app):
    def _make(email, *, kind=KIND_ALUMNI, verified=True, role=ROLE_USER, code=None, password=None):
        account = Account(
            kind=kind,
            email=email,
            full_name=email.split("@")[0].title(),
            location="Sarang",
            batch=2019 if kind == KIND_ALUMNI else None,
            department="CSE" if kind != KIND_ALUMNI else None,
            designation="Professor" if kind != KIND_ALUMNI else None,
            is_verified=verified,
            role=role,
            public_code=code,
        )
        if password:
            account.set_password(password)
        db.session.add(account)
        db.session.commit()
        return account

    return _make


@pytest.fixture()
def auth_header(app):
    def _header(account) -> dict:
        return {"Authorization": f"Bearer {issue_token(account)}"}

    return _header


def reload(account_id: int) -> Account | None:
    db.session.expire_all()
    return db.session.get(Account, account_id)
