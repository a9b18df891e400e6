# utils/mail.py
import smtplib
import ssl
import socket
from email.message import EmailMessage
from typing import Optional

from flask import current_app

__all__ = ["send_email", "mask_email"]

_PORT_PLAN = [("STARTTLS", 587), ("STARTTLS", 2525), ("SSL", 465)]


def mask_email(addr: Optional[str]) -> str:
    if not addr:
        return ""
    try:
        local, domain = addr.split("@", 1)
    except ValueError:
        return addr[:1] + "***"
    local_mask = local[0] + "***" if len(local) > 1 else "*"
    dot = domain.rfind(".")
    if dot > 0:
        dom_mask = domain[0] + "***" + domain[dot:]
    else:
        dom_mask = domain[:1] + "***"
    return f"{local_mask}@{dom_mask}"


def _port_plan(configured: int) -> list[tuple[str, int]]:
    """Configured port first, then the usual fallbacks."""
    first = ("SSL", configured) if configured == 465 else ("STARTTLS", configured)
    return [first] + [p for p in _PORT_PLAN if p[1] != configured]


def send_email(*, to: str, subject: str, html: str = "", text: str = "") -> None:
    """
    Send an email over SMTP using the app config:
      - SMTP_HOST / SMTP_PORT
      - SMTP_USER / SMTP_PASS
      - MAIL_FROM
    With MAIL_ENABLED off, the message is logged (without body) and dropped.
    Raises RuntimeError when every SMTP attempt fails.
    """
    cfg = current_app.config
    log = current_app.logger

    if not cfg.get("MAIL_ENABLED", True):
        log.info("[mail] disabled; skipping subject=%r to=%s", subject, mask_email(to))
        return

    host     = cfg.get("SMTP_HOST")
    login    = cfg.get("SMTP_USER")
    password = cfg.get("SMTP_PASS")
    mail_from = f'"{cfg.get("APP_NAME")}" <{cfg.get("MAIL_FROM")}>'

    if not host:
        raise RuntimeError("SMTP_HOST is not configured.")

    msg = EmailMessage()
    msg["From"] = mail_from
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content(text or "")
    if html:
        msg.add_alternative(html, subtype="html")

    last_err: Optional[Exception] = None

    for mode, port in _port_plan(int(cfg.get("SMTP_PORT") or 587)):
        try:
            ctx = ssl.create_default_context()
            if mode == "SSL":
                with smtplib.SMTP_SSL(host, port, context=ctx, timeout=20) as s:
                    if login and password:
                        s.login(login, password)
                    s.send_message(msg)
            else:
                with smtplib.SMTP(host, port, timeout=20) as s:
                    s.ehlo()
                    s.starttls(context=ctx)
                    s.ehlo()
                    if login and password:
                        s.login(login, password)
                    s.send_message(msg)

            log.info("[mail] sent via %s:%s to %s", host, port, mask_email(to))
            return
        except (smtplib.SMTPException, OSError, socket.error) as e:
            last_err = e
            log.warning("[mail] attempt %s %s:%s failed: %r", mode, host, port, e)

    raise RuntimeError(f"All SMTP attempts failed; last error: {last_err!r}")
