"""
FloodWatch — Transactional email over SMTP (two-factor codes, welcome mail).

Delivery failures are reported as a False return value and logged; callers
decide whether a failed send is fatal.
"""

from __future__ import annotations

import html
import logging
import smtplib
from datetime import datetime, timezone
from email.message import EmailMessage
from typing import Optional

from floodwatch.config import Settings, get_settings

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 30


class EmailService:
    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    def is_configured(self) -> bool:
        return self.settings.email_configured

    @property
    def sender(self) -> str:
        address = self.settings.FROM_EMAIL or self.settings.EMAIL_USER or ""
        return f'"{self.settings.FROM_NAME}" <{address}>'

    # ── Public API ────────────────────────────────────────────────────────────

    def send_two_factor_code(self, to_email: str, code: str, ttl_minutes: int) -> bool:
        if not to_email or not code:
            logger.warning("Two-factor email skipped: missing recipient or code")
            return False
        return self._send(
            to_email=to_email,
            subject=f"Your {self.settings.FROM_NAME} Verification Code",
            text=self.two_factor_text(code, ttl_minutes),
            html_body=self.two_factor_html(code, ttl_minutes),
        )

    def send_welcome_email(self, to_email: str, name: str) -> bool:
        if not to_email or not name:
            logger.warning("Welcome email skipped: missing recipient or name")
            return False
        return self._send(
            to_email=to_email,
            subject=f"Welcome to {self.settings.FROM_NAME} - Community Flood Monitoring",
            text=self.welcome_text(name),
            html_body=self.welcome_html(name),
        )

    # ── Templates ─────────────────────────────────────────────────────────────

    def two_factor_text(self, code: str, ttl_minutes: int) -> str:
        brand = self.settings.FROM_NAME
        return (
            f"To help keep our community safe and secure, please use the following "
            f"verification code to access your {brand} account:\n\n"
            f"Your Verification Code: {code}\n\n"
            f"This code will expire in {ttl_minutes} minutes.\n\n"
            "Please do not share this code with anyone. If you didn't request this "
            "code, please ignore this email.\n\n"
            f"Stay safe,\nThe {brand} Team\n\n"
            f"© {_year()} {brand}. All rights reserved."
        )

    def two_factor_html(self, code: str, ttl_minutes: int) -> str:
        brand = html.escape(self.settings.FROM_NAME)
        return (
            "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
            f"<title>{brand} Verification Code</title></head><body>"
            f"<h1>{brand}</h1>"
            "<p>To help keep our community safe and secure, please use the following "
            f"verification code to access your {brand} account:</p>"
            f"<div class=\"verification-code\">{html.escape(code)}</div>"
            f"<p>This code will expire in {ttl_minutes} minutes</p>"
            "<p>If you didn't request this code, please ignore this email.</p>"
            "</body></html>"
        )

    def welcome_text(self, name: str) -> str:
        brand = self.settings.FROM_NAME
        return (
            f"Hi {name},\n\n"
            f"Welcome to {brand}! You can now submit and follow flood reports "
            "in your community.\n\n"
            f"GET STARTED:\n{self.settings.FRONTEND_URL}\n\n"
            f"Stay safe and thank you for being part of our community!\n\n"
            f"The {brand} Team\n\n"
            f"© {_year()} {brand}. All rights reserved."
        )

    def welcome_html(self, name: str) -> str:
        brand = html.escape(self.settings.FROM_NAME)
        return (
            "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
            f"<title>Welcome to {brand}</title></head><body>"
            f"<h1>Welcome, {html.escape(name)}!</h1>"
            f"<p>You can now submit and follow flood reports on {brand}.</p>"
            f"<p><a href=\"{html.escape(self.settings.FRONTEND_URL)}\">Get started</a></p>"
            "</body></html>"
        )

    # ── Transport ─────────────────────────────────────────────────────────────

    def _send(self, *, to_email: str, subject: str, text: str, html_body: str) -> bool:
        if not self.is_configured():
            logger.warning("Email not sent: SMTP is not configured", extra={"subject": subject})
            return False

        s = self.settings
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.set_content(text)
        msg.add_alternative(html_body, subtype="html")

        try:
            if s.EMAIL_PORT == 465:
                with smtplib.SMTP_SSL(s.EMAIL_HOST, s.EMAIL_PORT, timeout=SMTP_TIMEOUT_SECONDS) as smtp:
                    smtp.login(s.EMAIL_USER, s.EMAIL_PASS)
                    smtp.send_message(msg)
            else:
                with smtplib.SMTP(s.EMAIL_HOST, s.EMAIL_PORT, timeout=SMTP_TIMEOUT_SECONDS) as smtp:
                    smtp.starttls()
                    smtp.login(s.EMAIL_USER, s.EMAIL_PASS)
                    smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Email delivery failed: %s", exc, extra={"subject": subject})
            return False

        logger.info("Email sent", extra={"subject": subject})
        return True


def _year() -> int:
    return datetime.now(timezone.utc).year


email_service = EmailService()
