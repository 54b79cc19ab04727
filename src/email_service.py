# src/email_service.py
"""
Email service for OTP codes and account notices.
Supports both SMTP and console logging for development.
"""
import os
import re
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional
from datetime import datetime
import logging

from config.settings import OTP_TTL_MIN

logger = logging.getLogger(__name__)


_BASE_STYLE = """
    body {
        font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif;
        line-height: 1.6;
        color: #333;
        max-width: 600px;
        margin: 0 auto;
        padding: 20px;
    }
    .content { background: #ffffff; padding: 30px; border: 1px solid #e1e1e1; }
    .otp {
        font-size: 32px;
        letter-spacing: 8px;
        font-weight: 700;
        text-align: center;
        background: #f5f5f5;
        padding: 16px;
        border-radius: 6px;
        margin: 20px 0;
    }
    .footer { padding: 20px; text-align: center; font-size: 12px; color: #666; }
"""


class EmailService:
    """Service for sending emails."""

    def __init__(self):
        """Initialize email service with environment configuration."""
        self.smtp_host = os.getenv("SMTP_HOST", "smtp.gmail.com")
        self.smtp_port = int(os.getenv("SMTP_PORT", "587"))
        self.smtp_user = os.getenv("SMTP_USER", "")
        self.smtp_password = os.getenv("SMTP_PASSWORD", "")
        self.from_email = os.getenv("FROM_EMAIL", self.smtp_user)
        self.from_name = os.getenv("FROM_NAME", "Zuhaush")

        # Use console mode if SMTP credentials not configured
        self.console_mode = not (self.smtp_user and self.smtp_password)

        if self.console_mode:
            logger.info("📧 Email service running in CONSOLE MODE (no SMTP configured)")
        else:
            logger.info(f"📧 Email service configured: {self.smtp_host}:{self.smtp_port}")

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        plain_body: Optional[str] = None
    ) -> bool:
        """
        Send an email.

        Returns:
            True if sent successfully, False otherwise. Never raises.
        """
        try:
            if self.console_mode:
                return self._send_console(to_email, subject, html_body)
            else:
                return self._send_smtp(to_email, subject, html_body, plain_body)
        except Exception as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            return False

    def _send_console(self, to_email: str, subject: str, html_body: str) -> bool:
        """Print email to console (for development)."""
        print("\n" + "="*80)
        print("📧 EMAIL (Console Mode)")
        print("="*80)
        print(f"To: {to_email}")
        print(f"From: {self.from_name} <{self.from_email}>")
        print(f"Subject: {subject}")
        print(f"Time: {datetime.utcnow().isoformat()}")
        print("-"*80)
        print(_html_to_text(html_body))
        print("="*80 + "\n")
        return True

    def _send_smtp(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        plain_body: Optional[str] = None
    ) -> bool:
        """Send email via SMTP."""
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = f"{self.from_name} <{self.from_email}>"
        msg['To'] = to_email

        msg.attach(MIMEText(plain_body or _html_to_text(html_body), 'plain'))
        msg.attach(MIMEText(html_body, 'html'))

        with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
            server.starttls()
            server.login(self.smtp_user, self.smtp_password)
            server.send_message(msg)

        logger.info(f"✉️ Email sent to {to_email}: {subject}")
        return True

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------
    def _otp_body(self, heading: str, intro: str, otp: str, name: Optional[str]) -> str:
        greeting = f"Hi {name}," if name else "Hello,"
        return f"""
        <!DOCTYPE html>
        <html>
        <head><meta charset="UTF-8"><style>{_BASE_STYLE}</style></head>
        <body>
            <div class="content">
                <h2>{heading}</h2>
                <p>{greeting}</p>
                <p>{intro}</p>
                <div class="otp">{otp}</div>
                <p><strong>This code expires in {OTP_TTL_MIN} minutes.</strong></p>
                <p>If you did not request this code, you can safely ignore this email.</p>
            </div>
            <div class="footer">
                <p>© {datetime.utcnow().year} Zuhaush. This is an automated email. Please do not reply.</p>
            </div>
        </body>
        </html>
        """

    def send_otp_email(self, to_email: str, otp: str, name: Optional[str] = None) -> bool:
        """Email-verification / login code."""
        html_body = self._otp_body(
            "Verify your email",
            "Use the following one-time code to continue:",
            otp,
            name,
        )
        return self.send_email(to_email=to_email, subject="Your verification code", html_body=html_body)

    def send_password_reset_otp_email(self, to_email: str, otp: str, name: Optional[str] = None) -> bool:
        html_body = self._otp_body(
            "Password reset",
            "We received a request to reset your password. Use this code to continue:",
            otp,
            name,
        )
        return self.send_email(to_email=to_email, subject="Your password reset code", html_body=html_body)

    def send_password_changed_notification(self, to_email: str, name: Optional[str] = None) -> bool:
        greeting = f"Hi {name}," if name else "Hello,"
        html_body = f"""
        <!DOCTYPE html>
        <html>
        <head><meta charset="UTF-8"><style>{_BASE_STYLE}</style></head>
        <body>
            <div class="content">
                <h2>Password changed</h2>
                <p>{greeting}</p>
                <p>Your account password was changed on {datetime.utcnow().strftime('%B %d, %Y at %I:%M %p UTC')}.</p>
                <p>If you did not make this change, contact support immediately.</p>
            </div>
        </body>
        </html>
        """
        return self.send_email(to_email=to_email, subject="Your password was changed", html_body=html_body)


def _html_to_text(html_body: str) -> str:
    text = html_body.replace('<br>', '\n').replace('<br/>', '\n').replace('</p>', '\n\n')
    text = re.sub(r'<style>.*?</style>', '', text, flags=re.S)
    text = re.sub(r'<[^>]+>', '', text)
    return re.sub(r'\n\s*\n+', '\n\n', text).strip()


# Singleton instance
_email_service = None


def get_email_service() -> EmailService:
    """Get or create email service singleton."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service


__all__ = ["EmailService", "get_email_service"]
