# services/notify.py
from flask import current_app

from errors import DependencyError
from models.account import Account
from utils.mail import send_email, mask_email

# purpose -> email subject
OTP_SUBJECTS = {
    "register": "Your Registration OTP",
    "login": "Your Login OTP",
    "reset": "Password Reset OTP",
}


def send_otp_email(account: Account, code: str, *, purpose: str) -> None:
    """Deliver an OTP. Delivery is on the critical path: failures raise DependencyError."""
    cfg = current_app.config
    ttl = cfg["OTP_TTL_MINUTES"]
    html = f"""
      <div style="font-family:Arial,Helvetica,sans-serif">
        <h2>{cfg["APP_NAME"]}</h2>
        <p>Your OTP is:</p>
        <h1 style="color:#2563eb;letter-spacing:3px">{code}</h1>
        <p>Valid for {ttl} minutes.</p>
        <p>Do not share this code.</p>
      </div>
    """
    try:
        send_email(
            to=account.email,
            subject=OTP_SUBJECTS.get(purpose, "Your OTP"),
            html=html,
            text=f"Your OTP is {code}. It is valid for {ttl} minutes.",
        )
    except Exception as e:
        current_app.logger.exception(
            "[notify] OTP delivery failed purpose=%s to=%s", purpose, mask_email(account.email)
        )
        raise DependencyError("Unable to send OTP right now") from e


def send_verified_email(account: Account) -> bool:
    """
    Tell the account holder their account is verified.
    Not critical: failures are logged and reported as False.
    """
    cfg = current_app.config
    html = f"""
      <div style="font-family:Arial,Helvetica,sans-serif;max-width:600px;margin:0 auto">
        <h1>Account Verified!</h1>
        <h2>Hello, {account.full_name}!</h2>
        <p>Congratulations! Your account has been verified.</p>
        <p>Your member code is <strong>{account.public_code or "pending"}</strong>.</p>
        <a href="{cfg["LOGIN_URL"]}">Log In Now</a>
        <p>Best regards,<br>The {cfg["APP_NAME"]} Team</p>
      </div>
    """
    try:
        send_email(
            to=account.email,
            subject="Your Alumni Network Account is Verified!",
            html=html,
            text=f"Hello {account.full_name}, your account has been verified.",
        )
        return True
    except Exception:
        current_app.logger.exception(
            "[notify] verification email failed account=%s to=%s", account.id, mask_email(account.email)
        )
        return False
