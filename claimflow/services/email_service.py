"""Email service for claim workflow notifications."""
from __future__ import annotations

import logging
from typing import Optional

from flask import current_app, render_template_string
from flask_mail import Mail, Message

logger = logging.getLogger(__name__)

# Rendered from a string, so Jinja autoescapes every value
_HTML_TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>ClaimFlow - {{ title }}</title>
    <style>
        body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; margin: 0; padding: 0; background-color: #f8f9fa; }
        .container { max-width: 600px; margin: 0 auto; background-color: white; }
        .header { background-color: #0d6efd; color: white; padding: 24px; text-align: center; }
        .content { padding: 32px 30px; }
        .footer { background-color: #f8f9fa; padding: 20px; text-align: center; color: #6c757d; font-size: 14px; }
    </style>
</head>
<body>
    <div class="container">
        <div class="header"><h1>ClaimFlow</h1><p>Reimbursement Claims</p></div>
        <div class="content">
            <h2>{{ title }}</h2>
            <p>{% if user_name %}Hi {{ user_name }},{% else %}Hello,{% endif %}</p>
            <p>{{ message }}</p>
            <p>Sign in to the claims portal to review it.</p>
        </div>
        <div class="footer">
            <p>This is an automated message, please do not reply to this email.</p>
        </div>
    </div>
</body>
</html>
"""


class EmailService:
    """Service for sending claim status emails."""

    def __init__(self, mail: Optional[Mail] = None):
        self.mail = mail

    def send_claim_email(
        self,
        email: str,
        title: str,
        message: str,
        claim_number: Optional[str] = None,
        user_name: Optional[str] = None,
    ) -> bool:
        """Send a notification email about a claim."""
        try:
            subject = f"ClaimFlow - {title}"
            if claim_number:
                subject = f"{subject} ({claim_number})"
            return self._send_email(
                to_email=email,
                subject=subject,
                html_body=self._get_html_template(title, message, user_name),
                text_body=self._get_text_template(title, message, user_name),
            )
        except Exception as e:
            logger.error(f"Failed to send claim email to {email}: {str(e)}")
            return False

    def _send_email(self, to_email: str, subject: str, html_body: str, text_body: str = None) -> bool:
        """Send email using Flask-Mail."""
        try:
            if not self.mail:
                logger.error("Mail service not initialized")
                return False

            msg = Message(
                subject=subject,
                sender=current_app.config.get("MAIL_DEFAULT_SENDER"),
                recipients=[to_email],
            )

            if html_body:
                msg.html = html_body
            if text_body:
                msg.body = text_body

            self.mail.send(msg)
            logger.info(f"Email sent successfully to {to_email}")
            return True

        except Exception as e:
            logger.error(f"Failed to send email to {to_email}: {str(e)}")
            return False

    def _get_html_template(self, title: str, message: str, user_name: str = None) -> str:
        return render_template_string(_HTML_TEMPLATE, title=title, message=message, user_name=user_name)

    def _get_text_template(self, title: str, message: str, user_name: str = None) -> str:
        name_greeting = f"Hi {user_name}," if user_name else "Hello,"
        text_template = f"""
ClaimFlow - {title}

{name_greeting}

{message}

Sign in to the claims portal to review it.

--
This is an automated message, please do not reply to this email.
        """
        return text_template.strip()


# Global email service instance
email_service = EmailService()


def init_email_service(mail: Mail) -> None:
    """Initialize the email service with Flask-Mail instance."""
    global email_service
    email_service.mail = mail


def send_claim_email(email: str, title: str, message: str, claim_number: str = None, user_name: str = None) -> bool:
    """Convenience function to send a claim notification email."""
    return email_service.send_claim_email(email, title, message, claim_number, user_name)
