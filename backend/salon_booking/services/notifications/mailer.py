# backend/salon_booking/services/notifications/mailer.py
# Resend REST API. Without RESEND_API_KEY emails are only logged (development).

import logging

import httpx

from ...config import settings
from .formatters import EmailMessage

logger = logging.getLogger(__name__)

RESEND_URL = "https://api.resend.com/emails"


async def send_email(message: EmailMessage) -> str | None:
    """Send one email. Returns the provider id; raises on HTTP errors."""
    if not settings.resend_api_key:
        logger.info(f"[DEV] Email would be sent: to={message.to} subject={message.subject!r}")
        return None

    async with httpx.AsyncClient(timeout=10.0) as client:
        response = await client.post(
            RESEND_URL,
            headers={"Authorization": f"Bearer {settings.resend_api_key}"},
            json={
                "from": settings.email_from,
                "to": [message.to],
                "subject": message.subject,
                "text": message.text,
            },
        )
        response.raise_for_status()
        email_id = response.json().get("id")

    logger.info(f"Email sent: id={email_id} subject={message.subject!r}")
    return email_id
