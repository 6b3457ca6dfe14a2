"""SMTP notifier backed by Flask-Mail."""

from __future__ import annotations

import smtplib
from urllib.parse import quote

from flask import current_app
from flask_mail import BadHeaderError, Mail, Message

from .abstract_notifier import AbstractNotifier

SUBJECT = "Verify Your Email"

HTML_TEMPLATE = """\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h1 style="color: #2563eb;">Verify Your Email</h1>
  <p>Thank you for registering! Please click the button below to verify your email address:</p>
  <div style="text-align: center; margin: 30px 0;">
    <a href="{url}" style="background-color: #2563eb; color: white; padding: 12px 24px;
       text-decoration: none; border-radius: 6px; display: inline-block;">Verify Email</a>
  </div>
  <p>If the button doesn't work, you can copy and paste this link into your browser:</p>
  <p style="color: #666; word-break: break-all;">{url}</p>
  <p>This link will expire in {hours} hours.</p>
  <p>If you didn't create an account, you can safely ignore this email.</p>
</div>
"""

TEXT_TEMPLATE = """\
Thank you for registering!

Verify your email address by opening this link:
{url}

This link will expire in {hours} hours.
If you didn't create an account, you can safely ignore this email.
"""


class MailNotifier(AbstractNotifier):
    """Send verification links through the configured mail relay."""

    def __init__(self, mail: Mail, base_url: str | None = None):
        self.mail = mail
        self.base_url = (base_url or "").rstrip("/")

    def verification_url(self, token: str) -> str:
        return f"{self.base_url}/verify-email?token={quote(token, safe='')}"

    def send_verification(self, email: str, token: str) -> bool:
        """Send the verification email; failures are logged and reported as False."""

        sender = current_app.config.get("MAIL_DEFAULT_SENDER")
        if not sender:
            current_app.logger.error(
                "Email configuration is missing; set MAIL_DEFAULT_SENDER or MAIL_USERNAME."
            )
            return False

        url = self.verification_url(token)
        hours = current_app.config.get("VERIFICATION_TOKEN_TTL_HOURS", 24)
        message = Message(
            subject=SUBJECT,
            sender=sender,
            recipients=[email],
            body=TEXT_TEMPLATE.format(url=url, hours=hours),
            html=HTML_TEMPLATE.format(url=url, hours=hours),
        )

        try:
            self.mail.send(message)
        except (smtplib.SMTPException, OSError, BadHeaderError, ValueError) as exc:
            current_app.logger.error("Error sending verification email: %s", exc)
            return False

        current_app.logger.info("Verification email dispatched")
        return True
