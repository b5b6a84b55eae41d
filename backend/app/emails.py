"""
Transactional email through the Resend HTTP API.

Sends are fire-and-forget: callers queue them as background tasks and a
failed send is logged, never raised. Without RESEND_API_KEY the message is
logged instead of sent (local development).
"""
import logging
from html import escape

import httpx

from .config import get_settings

logger = logging.getLogger(__name__)

RESEND_URL = "https://api.resend.com/emails"

_BUTTON = (
    'background-color: #f59e0b; color: #000; padding: 12px 30px; text-decoration: none; '
    'border-radius: 6px; font-weight: bold; display: inline-block;'
)


def _layout(heading: str, body_html: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">'
        '<h1 style="color: #f59e0b; text-align: center;">SparkyPass</h1>'
        f'<h2 style="text-align: center;">{heading}</h2>'
        f"{body_html}"
        "</div>"
    )


def _link_block(url: str, label: str, expires: str) -> str:
    safe_url = escape(url, quote=True)
    return (
        f'<div style="text-align: center; margin: 30px 0;"><a href="{safe_url}" style="{_BUTTON}">{label}</a></div>'
        '<p style="color: #666; font-size: 14px;">Or copy and paste this link into your browser:</p>'
        f'<p style="color: #666; font-size: 14px; word-break: break-all;">{safe_url}</p>'
        f'<p style="color: #666; font-size: 14px;">This link expires in {expires}.</p>'
    )


def send_email(to: str, subject: str, html_body: str, text_body: str) -> bool:
    """Returns True when Resend accepted the message."""
    settings = get_settings()
    if not settings.resend_api_key:
        logger.info("Email not sent (no RESEND_API_KEY) to=%s subject=%r\n%s", to, subject, text_body)
        return False
    try:
        response = httpx.post(
            RESEND_URL,
            headers={"Authorization": f"Bearer {settings.resend_api_key}"},
            json={
                "from": settings.email_from,
                "to": [to],
                "subject": subject,
                "html": html_body,
                "text": text_body,
            },
            timeout=10.0,
        )
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error("Failed to send email to=%s subject=%r: %s", to, subject, e)
        return False
    logger.info("Email sent to=%s subject=%r", to, subject)
    return True


def send_verification_email(to: str, name: str, verification_url: str) -> bool:
    html_body = _layout(
        "Verify Your Email",
        f"<p>Hi {escape(name)},</p>"
        "<p>Thanks for signing up for SparkyPass! Please verify your email address by clicking the button below:</p>"
        + _link_block(verification_url, "Verify Email", "24 hours")
        + "<p style=\"color: #999; font-size: 12px; text-align: center;\">"
        "If you didn't create a SparkyPass account, you can safely ignore this email.</p>",
    )
    text_body = (
        f"Hi {name},\n\nThanks for signing up for SparkyPass! Please verify your email address by visiting:\n\n"
        f"{verification_url}\n\nThis link expires in 24 hours.\n\n"
        "If you didn't create a SparkyPass account, you can safely ignore this email."
    )
    return send_email(to, "Verify your SparkyPass email", html_body, text_body)


def send_password_reset_email(to: str, name: str, reset_url: str) -> bool:
    html_body = _layout(
        "Reset Your Password",
        f"<p>Hi {escape(name)},</p>"
        "<p>We received a request to reset your password. Click the button below to choose a new password:</p>"
        + _link_block(reset_url, "Reset Password", "1 hour")
        + "<p style=\"color: #999; font-size: 12px; text-align: center;\">"
        "If you didn't request a password reset, you can safely ignore this email.</p>",
    )
    text_body = (
        f"Hi {name},\n\nWe received a request to reset your password. Visit the link below to choose a new password:\n\n"
        f"{reset_url}\n\nThis link expires in 1 hour.\n\n"
        "If you didn't request a password reset, you can safely ignore this email."
    )
    return send_email(to, "Reset your SparkyPass password", html_body, text_body)


def send_welcome_trial_email(to: str, name: str) -> bool:
    dashboard_url = f"{get_settings().app_base_url}/dashboard"
    html_body = _layout(
        "Your 7-day free trial has started",
        f"<p>Hi {escape(name)},</p>"
        "<p>Welcome to SparkyPass! You have full access to every quiz, flashcard set and mock exam "
        "for the next 7 days.</p>"
        f'<div style="text-align: center; margin: 30px 0;"><a href="{escape(dashboard_url, quote=True)}" '
        f'style="{_BUTTON}">Start Studying</a></div>',
    )
    text_body = (
        f"Hi {name},\n\nWelcome to SparkyPass! You have full access to every quiz, flashcard set and "
        f"mock exam for the next 7 days.\n\nStart studying: {dashboard_url}"
    )
    return send_email(to, "Welcome to SparkyPass: your free trial has started", html_body, text_body)


def send_contact_message(to: str, name: str, email: str, message: str, client: str, submitted_at: str) -> bool:
    text_body = (
        "New Contact Form Submission\n"
        "============================\n\n"
        f"From: {name}\nEmail: {email}\nIP: {client}\nSubmitted: {submitted_at}\n\n"
        f"Message:\n{message}\n\n"
        "============================\n"
        "This message was sent via the SparkyPass contact form."
    )
    html_body = f"<pre>{escape(text_body)}</pre>"
    return send_email(to, f"SparkyPass Contact: {name}", html_body, text_body)
