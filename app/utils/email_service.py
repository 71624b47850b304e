# app/utils/email_service.py

import asyncio
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import ClientError
from jinja2 import Environment, FileSystemLoader

from app.core.config import settings
from app.landlords.models import Landlord
from app.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_BRAND_COLOR = "#2F5597"


class EmailService:
    """
    Sends branded emails via Amazon SES, rendering Jinja2 templates.

    Built once at application start and handed to request handlers through
    a dependency.
    """
    def __init__(self, sender: Optional[str] = None, client=None):
        self.ses_client = client or boto3.client(
            "ses",
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region,
        )
        self.sender = sender if sender is not None else settings.aws_ses_sender_email

        template_path = Path(__file__).parent.parent / "templates" / "emails"
        self.jinja_env = Environment(loader=FileSystemLoader(template_path), autoescape=True)

    def _render_template(self, template_name: str, context: Dict[str, Any]) -> str:
        """Render an HTML email template using Jinja2."""
        try:
            template = self.jinja_env.get_template(template_name)
            return template.render(context)
        except Exception as e:
            logger.error("Error rendering email template", template=template_name, error_message=str(e))
            raise

    @staticmethod
    def branding_context(landlord: Optional[Landlord]) -> Dict[str, Any]:
        """Landlord branding merged into every template"""
        if landlord is None:
            return {
                "brand_name": "Property Management",
                "brand_logo_url": None,
                "brand_color": DEFAULT_BRAND_COLOR,
                "portal_url": settings.signing_base_url,
            }
        return {
            "brand_name": landlord.name,
            "brand_logo_url": landlord.logo_url,
            "brand_color": landlord.primary_color or DEFAULT_BRAND_COLOR,
            "portal_url": f"https://{landlord.custom_domain or f'{landlord.subdomain}.{settings.root_domain}'}",
        }

    async def _send_email_async(self, to_emails: List[str], subject: str, html_body: str):
        """
        Sends a multipart email using a synchronous boto3 call in a worker thread.
        """
        msg = MIMEMultipart("mixed")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = ", ".join(to_emails)

        msg_body = MIMEMultipart("alternative")
        msg_body.attach(MIMEText(html_body, "html"))
        msg.attach(msg_body)

        try:
            await asyncio.to_thread(
                self.ses_client.send_raw_email,
                Source=self.sender,
                Destinations=to_emails,
                RawMessage={"Data": msg.as_string()},
            )
            logger.info("Email sent successfully", subject=subject, to=", ".join(to_emails))
        except ClientError as e:
            logger.error("Failed to send email", subject=subject, error_message=str(e))
            raise

    async def send(
        self,
        *,
        to: str,
        subject: str,
        template_name: str,
        context: Dict[str, Any],
        landlord: Optional[Landlord] = None,
    ):
        """
        Render a branded template and send it to a single recipient.

        Args:
            to (str): Recipient email address.
            subject (str): Subject of the email.
            template_name (str): Name of the Jinja2 template file.
            context (Dict[str, Any]): Template data.
            landlord (Optional[Landlord]): Landlord whose branding is applied.
        """
        if not self.sender:
            logger.error("Email sending is disabled: AWS_SES_SENDER_EMAIL is not configured")
            return

        html_body = self._render_template(
            template_name, {**self.branding_context(landlord), **context, "subject": subject}
        )
        await self._send_email_async(to_emails=[to], subject=subject, html_body=html_body)
