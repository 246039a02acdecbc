# app/core/email.py
"""
Email service using Resend for sending outreach and transactional emails.
"""
import logging
from html import escape
from typing import Dict, Optional

import resend
from app.core.config import settings

logger = logging.getLogger(__name__)


def init_resend():
    """Initialize Resend with API key."""
    resend.api_key = settings.RESEND_API_KEY


def _tag_list(tags: Optional[Dict[str, Optional[str]]]) -> list:
    # Resend tags are name/value pairs; empty values are dropped
    return [
        {"name": name, "value": str(value)}
        for name, value in (tags or {}).items()
        if value
    ]


def send_email(
    to_email: str,
    subject: str,
    html: str,
    text: str = None,
    tags: Optional[Dict[str, Optional[str]]] = None,
    from_email: str = None,
) -> dict:
    """
    Send a single email.

    Args:
        to_email: Recipient email address
        subject: Subject line
        html: HTML body
        text: Optional plain-text alternative
        tags: Opaque tracking values echoed back on delivery events
        from_email: Overrides the configured sender

    Returns:
        {"success": True, "id": <provider message id>} or
        {"success": False, "error": <reason>}
    """
    init_resend()

    params = {
        "from": from_email or settings.EMAIL_FROM,
        "to": [to_email],
        "subject": subject,
        "html": html,
    }
    if text:
        params["text"] = text
    tag_list = _tag_list(tags)
    if tag_list:
        params["tags"] = tag_list

    try:
        response = resend.Emails.send(params)
        logger.info(f"[EMAIL] '{subject}' sent to {to_email}")
        return {"success": True, "id": response.get("id")}
    except Exception as e:
        logger.error(f"[EMAIL ERROR] Failed to send email to {to_email}: {e}")
        return {"success": False, "error": str(e)}


def render_receipt_html(display_name: str, amount_cents: int, campaign_name: str = None) -> str:
    """HTML body for a donation receipt."""
    amount = f"${amount_cents / 100:.2f}"
    campaign_html = (
        f"<p>Your gift supports <strong>{escape(campaign_name)}</strong>.</p>" if campaign_name else ""
    )
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="utf-8">
    </head>
    <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #0f172a;">
        <div style="max-width: 600px; margin: 0 auto; padding: 24px;">
            <h2 style="margin-top: 0;">Thank you for your donation!</h2>
            <p>Hi {escape(display_name)},</p>
            <p>We received your donation of <strong>{amount}</strong>.</p>
            {campaign_html}
            <p>Thank you for supporting our community.</p>
        </div>
    </body>
    </html>
    """
