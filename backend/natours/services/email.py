"""
Email delivery via SMTP.

send_email is synchronous (smtplib); the async helpers run it in a worker
thread so the event loop is not blocked while the SMTP conversation runs.
"""
import asyncio
import logging
import smtplib
from email.message import EmailMessage

from natours.config import settings

logger = logging.getLogger("uvicorn.error")


def send_email(to_address: str, subject: str, body: str) -> None:
    if not settings.smtp_host or not settings.email_from:
        raise ValueError("SMTP_HOST and EMAIL_FROM must be configured")

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.email_from
    msg["To"] = to_address
    msg.set_content(body)

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=20) as server:
            if settings.smtp_use_tls:
                server.starttls()
            if settings.smtp_username and settings.smtp_password:
                server.login(settings.smtp_username, settings.smtp_password)
            server.send_message(msg)
        logger.info("[email] sent '%s' to %s", subject, to_address)
    except Exception as e:
        logger.error("[email] delivery to %s failed: %s", to_address, e)
        raise


async def send_password_reset(to_address: str, reset_url: str) -> None:
    message = (
        f"Forgot your password? Submit a PATCH request with your new password and "
        f"passwordConfirm to: {reset_url}.\n"
        f"If you didn't forget your password, please ignore this email."
    )
    subject = f"Your password reset token (valid for {settings.password_reset_expires_minutes} min)"
    await asyncio.to_thread(send_email, to_address, subject, message)
