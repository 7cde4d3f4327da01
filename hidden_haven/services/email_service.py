"""Email service for order notifications."""

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from html import escape
from typing import Optional

from hidden_haven.config import Settings, get_settings
from hidden_haven.models.order import OrderInDB

logger = logging.getLogger(__name__)


class EmailService:
    """Sends order emails to shop owners and customers over SMTP."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()

    @property
    def enabled(self) -> bool:
        return self.settings.smtp_enabled

    def _create_email_html(
        self, title: str, message: str, order: Optional[OrderInDB], link_path: str
    ) -> str:
        """Create HTML email content for an order notification."""
        details = ""
        if order is not None:
            items = ", ".join(f"{escape(i.name)} x{i.cartQuantity}" for i in order.items)
            details = f"""
                    <div class="order-card">
                        <h3>Order #{escape(order.id)}</h3>
                        <p><strong>Customer:</strong> {escape(order.customerEmail)}</p>
                        <p><strong>Total:</strong> ${order.total:.2f}</p>
                        <p><strong>Items:</strong> {items}</p>
                        <p><strong>Status:</strong> {escape(order.status)}</p>
                    </div>"""

        html = f"""
        <!DOCTYPE html>
        <html>
        <head>
            <style>
                body {{
                    font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif;
                    line-height: 1.6;
                    color: #f3f4f6;
                }}
                .container {{
                    max-width: 600px;
                    margin: 0 auto;
                    background: linear-gradient(135deg, #1e1b4b 0%, #3730a3 100%);
                    border-radius: 12px;
                    padding: 40px 30px;
                }}
                .header h1 {{
                    color: #a855f7;
                    text-align: center;
                }}
                .order-card {{
                    background: rgba(34, 197, 94, 0.1);
                    border: 1px solid rgba(34, 197, 94, 0.3);
                    border-radius: 8px;
                    padding: 20px;
                    margin: 20px 0;
                }}
                .button {{
                    display: inline-block;
                    background: linear-gradient(135deg, #7c3aed, #a855f7);
                    color: white;
                    padding: 14px 28px;
                    text-decoration: none;
                    border-radius: 8px;
                    font-weight: bold;
                }}
                .footer {{
                    text-align: center;
                    color: #9ca3af;
                    font-size: 12px;
                }}
            </style>
        </head>
        <body>
            <div class="container">
                <div class="header">
                    <h1>{escape(self.settings.smtp_from_name)}</h1>
                </div>
                <h2>{escape(title)}</h2>
                <p>{escape(message)}</p>
                {details}
                <p style="text-align: center;">
                    <a class="button" href="{self.settings.frontend_base_url}{link_path}">View Order</a>
                </p>
                <div class="footer">
                    <p>You received this email because you have order notifications enabled in your account.</p>
                </div>
            </div>
        </body>
        </html>
        """
        return html

    def _send_sync(self, msg: MIMEMultipart) -> None:
        with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, timeout=10) as server:
            server.starttls()
            if self.settings.smtp_username and self.settings.smtp_password:
                server.login(self.settings.smtp_username, self.settings.smtp_password)
            server.send_message(msg)

    async def send_order_email(
        self,
        recipient_email: str,
        title: str,
        message: str,
        order: Optional[OrderInDB] = None,
        link_path: str = "/orders",
    ) -> bool:
        """Send an order notification email. Returns False on any delivery failure."""
        if not self.enabled:
            logger.debug("SMTP disabled, skipping email to %s", recipient_email)
            return False

        try:
            # Create message
            msg = MIMEMultipart("alternative")
            msg["Subject"] = title
            msg["From"] = formataddr((self.settings.smtp_from_name, self.settings.smtp_from_email))
            msg["To"] = recipient_email

            # Create plain text fallback
            text_content = f"{title}\n\n{message}\n"
            if order is not None:
                text_content += (
                    f"\nOrder #{order.id}\n"
                    f"Customer: {order.customerEmail}\n"
                    f"Total: ${order.total:.2f}\n"
                    f"Status: {order.status}\n"
                )

            # Attach parts
            msg.attach(MIMEText(text_content, "plain"))
            msg.attach(MIMEText(self._create_email_html(title, message, order, link_path), "html"))

            await asyncio.to_thread(self._send_sync, msg)

            logger.info("Email sent successfully to %s", recipient_email)
            return True

        except smtplib.SMTPAuthenticationError as e:
            logger.error("SMTP authentication failed. Check credentials: %s", e)
            return False
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP error sending email to %s: %s", recipient_email, e)
            return False
