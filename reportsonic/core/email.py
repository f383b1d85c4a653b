"""
reportsonic/core/email.py

Email Sending Utilities

Handles sending transactional emails for:
- Welcome email after registration
- Password reset link
- Password reset confirmation

Templates are rendered with Jinja2 and delivered through SendGrid. When
EMAILS_ENABLED is off the message is logged and skipped.
"""

import logging
from datetime import datetime
from typing import Any

from fastapi import HTTPException
from jinja2 import Environment, FileSystemLoader, select_autoescape
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import From, Mail, To
from starlette.concurrency import run_in_threadpool

from reportsonic.core.config import settings

# Logger configuration
logger = logging.getLogger(__name__)

# Jinja2 template environment setup
jinja_env = Environment(
    loader=FileSystemLoader(settings.mail_templates_path),
    autoescape=select_autoescape(["html", "xml"]),
)


def _app_name() -> str:
    return settings.MAIL_FROM_NAME or settings.APP_NAME


def _render_template(template_name: str, context: dict[str, Any]) -> str:
    """
    Renders an email template using Jinja2 with provided context.
    Args:
        template_name (str): Name of the template file.
        context (dict[str, Any]): Variables to pass to the template.
    Returns:
        str: Rendered HTML content.
    """
    template = jinja_env.get_template(template_name)
    full_context = {
        "year": datetime.now().year,
        "company_name": _app_name(),
        "app_name": settings.APP_NAME,
        "base_url": str(settings.BASE_URL).rstrip("/"),
        "support_email": str(settings.SUPPORT_EMAIL),
        **context,
    }
    rendered_content = template.render(full_context)
    logger.debug(f"Successfully rendered template: {template_name}")
    return rendered_content


async def _send_email(to_email: str, subject: str, html_content: str) -> None:
    """
    Sends an email using SendGrid API.
    Args:
        to_email (str): Recipient's email address.
        subject (str): Email subject line.
        html_content (str): HTML content of the email.
    """
    if not settings.EMAILS_ENABLED:
        logger.warning(
            f"Email sending disabled. Skipping send to {to_email} for subject '{subject}'"
        )
        return

    if not settings.SENDGRID_API_KEY:
        logger.error("SendGrid API Key setting is missing")
        raise HTTPException(status_code=500, detail="Email service configuration missing")

    message = Mail(
        from_email=From(email=str(settings.MAIL_FROM), name=_app_name()),
        to_emails=To(to_email),
        subject=subject,
        html_content=html_content,
    )

    sg = SendGridAPIClient(settings.SENDGRID_API_KEY)
    response = await run_in_threadpool(sg.client.mail.send.post, request_body=message.get())
    logger.info(
        f"Email sent to {to_email} for subject '{subject}' with status code {response.status_code}"
    )
    if response.status_code >= 300:
        logger.error(f"SendGrid API error: Status={response.status_code}, Body={response.body}")
        raise HTTPException(status_code=500, detail="Failed to send email via provider")


async def send_welcome_email(to_email: str, name: str) -> None:
    subject = f"Welcome to {_app_name()}!"
    context = {"name": name, "dashboard_link": f"{settings.BASE_URL.rstrip('/')}/dashboard"}
    html_content = _render_template("welcome.html", context)
    await _send_email(to_email, subject, html_content)
    logger.info(f"Welcome email sent to {to_email}")


async def send_password_reset_email(to_email: str, reset_link: str, name: str | None = None) -> None:
    """
    Sends the password reset link to the user.
    Args:
        to_email (str): Recipient's email address.
        reset_link (str): Absolute link carrying the reset token.
    """
    subject = f"Reset Your Password - {_app_name()}"
    context = {
        "name": name,
        "reset_link": reset_link,
        "reset_ttl_min": settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES,
    }
    html_content = _render_template("password_reset.html", context)
    await _send_email(to_email, subject, html_content)
    logger.info(f"Password reset email sent to {to_email}")


async def send_password_reset_confirmation(to_email: str, name: str | None = None) -> None:
    subject = f"Your Password Has Been Reset - {_app_name()}"
    context = {"name": name, "signin_link": f"{settings.BASE_URL.rstrip('/')}/auth/signin"}
    html_content = _render_template("password_reset_confirmation.html", context)
    await _send_email(to_email, subject, html_content)
    logger.info(f"Password reset confirmation sent to {to_email}")
