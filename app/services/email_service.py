"""
Email service.

Handles sending emails via SMTP using aiosmtplib for async support.
Used in production by the password-reset and forgot-username flows;
in development the reset link is returned in the API response instead.
"""

import logging
from email.message import EmailMessage

import aiosmtplib

from app.core.config import settings

logger = logging.getLogger(__name__)

# Transport failures callers may catch to keep anti-enumeration responses uniform.
EMAIL_ERRORS = (aiosmtplib.SMTPException, OSError)


def build_reset_url(token: str) -> str:
    return f"{settings.FRONTEND_URL}/reset-password?token={token}"


async def send_email(to: str, subject: str, html_body: str) -> None:
    """Send an HTML email via the configured SMTP server."""
    message = EmailMessage()
    message["From"] = settings.SENDER_EMAIL
    message["To"] = to
    message["Subject"] = subject
    message.set_content(html_body, subtype="html")

    try:
        await aiosmtplib.send(
            message,
            hostname=settings.EMAIL_HOST,
            port=settings.EMAIL_PORT,
            username=settings.SENDER_EMAIL,
            password=settings.EMAIL_PASSWORD,
            start_tls=True,
        )
        logger.info("Email sent to %s", to)
    except EMAIL_ERRORS:
        logger.exception("Failed to send email to %s", to)
        raise


async def send_password_reset_email(to_email: str, reset_token: str) -> None:
    """
    Send the reset link.

    The link points to the frontend, which calls
    GET /password-reset/verify/{token} before showing the form and
    POST /password-reset/reset to submit it.
    """
    reset_link = build_reset_url(reset_token)
    ttl = settings.RESET_TOKEN_TTL_MINUTES

    subject = f"{settings.APP_NAME} password reset"
    html_body = f"""\
    <html>
    <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
        <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2 style="color: #2c3e50;">Reset your password</h2>
            <p>We received a request to reset the password of your
               <strong>{settings.APP_NAME}</strong> account.</p>
            <div style="text-align: center; margin: 30px 0;">
                <a href="{reset_link}"
                   style="background-color: #3498db; color: #fff; padding: 12px 30px;
                          text-decoration: none; border-radius: 5px; font-size: 16px;">
                    Choose a new password
                </a>
            </div>
            <p style="color: #7f8c8d; font-size: 13px;">
                If the button doesn't work, copy and paste this link into your browser:<br>
                <a href="{reset_link}">{reset_link}</a>
            </p>
            <p style="color: #7f8c8d; font-size: 13px;">
                This link expires in {ttl} minutes and can be used once.
                If you did not ask for a reset, ignore this email.
            </p>
        </div>
    </body>
    </html>
    """

    await send_email(to_email, subject, html_body)


async def send_username_reminder(to_email: str, username: str) -> None:
    subject = f"Your {settings.APP_NAME} username"
    html_body = f"""\
    <html>
    <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
        <p>Your username is <strong>{username}</strong>.</p>
    </body>
    </html>
    """
    await send_email(to_email, subject, html_body)
