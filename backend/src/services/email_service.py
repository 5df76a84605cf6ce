"""
Transactional email through the SendGrid v3 HTTP API.

Without SENDGRID_API_KEY configured, sending is skipped with a warning so
local development and tests never need a mail provider.
"""

import logging
from pathlib import Path
from typing import Any, Optional

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from core.config import EMAIL_FROM, SENDGRID_API_KEY

logger = logging.getLogger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"

_template_env = Environment(
    loader=FileSystemLoader(str(Path(__file__).parent.parent.parent / "templates")),
    autoescape=select_autoescape(['html', 'xml'])
)


class EmailService:
    """Send templated emails."""

    @staticmethod
    def render(template_name: str, **context: Any) -> str:
        return _template_env.get_template(template_name).render(**context)

    @staticmethod
    async def send_email(to: str, subject: str, html: str, text: Optional[str] = None) -> bool:
        """
        Send one email. Returns True when the provider accepted it.

        Raises:
            httpx.HTTPStatusError: if SendGrid rejects the request
        """
        if not SENDGRID_API_KEY:
            logger.warning(f"SENDGRID_API_KEY not set; skipping email '{subject}' to {to}")
            return False

        content = []
        if text:
            content.append({"type": "text/plain", "value": text})
        content.append({"type": "text/html", "value": html})

        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(
                SENDGRID_SEND_URL,
                headers={"Authorization": f"Bearer {SENDGRID_API_KEY}"},
                json={
                    "personalizations": [{"to": [{"email": to}]}],
                    "from": {"email": EMAIL_FROM},
                    "subject": subject,
                    "content": content,
                },
            )
            response.raise_for_status()

        logger.info(f"Sent email '{subject}' to {to}")
        return True
