"""
Outgoing email.

Without an SMTP host configured the Mailer only logs what it would have sent,
which is what local development and the tests rely on.
"""

import logging
import smtplib
from email.message import EmailMessage
from typing import List, Optional

from config import Settings
from schemas import ContactMessage

logger = logging.getLogger(__name__)


class Mailer:
    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def enabled(self) -> bool:
        return self.settings.mail_enabled

    @property
    def admin_address(self) -> Optional[str]:
        return self.settings.admin_email

    def build(self, to: str, subject: str, text: str, html: Optional[str] = None) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.settings.smtp_user or self.settings.admin_email or "noreply@localhost"
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(text)
        if html:
            msg.add_alternative(html, subtype="html")
        return msg

    def send(self, to: str, subject: str, text: str, html: Optional[str] = None) -> bool:
        """Returns True if the message was handed to the SMTP server."""
        msg = self.build(to, subject, text, html)
        if not self.enabled:
            logger.info("Mail disabled, not sending %r to %s", subject, to)
            return False
        try:
            with smtplib.SMTP_SSL(self.settings.smtp_host, self.settings.smtp_port) as smtp:
                if self.settings.smtp_user:
                    smtp.login(self.settings.smtp_user, self.settings.smtp_password or "")
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError):
            logger.error("Sending %r to %s failed", subject, to, exc_info=True)
            raise
        logger.info("Sent %r to %s", subject, to)
        return True


def order_email_body(order: dict, items: List[dict]) -> str:
    address = ", ".join(
        part for part in (
            order.get("shipping_address"),
            order.get("apartment"),
            order.get("street"),
            order.get("city"),
            order.get("state"),
        ) if part
    )
    lines = [
        "New Order Received",
        "",
        f"Order Number: {order['order_number']}",
        f"Customer: {order['customer_name']}",
        f"Email: {order['customer_email']}",
        f"Phone: {order.get('customer_phone') or ''}",
        f"Address: {address}",
        "",
        "Order Items:",
    ]
    for idx, item in enumerate(items, start=1):
        lines.append(f"{idx}. {item['productName']} (Qty: {item['quantity']}) - ${item['total']:.2f}")
    lines += ["", f"Total Amount: ${order['total_amount']:.2f}"]
    return "\n".join(lines)


def notify_new_order(mailer: Mailer, order: dict, items: List[dict]) -> bool:
    if not mailer.admin_address:
        logger.warning("No admin address configured, skipping order notification")
        return False
    return mailer.send(mailer.admin_address, f"New Order: {order['order_number']}", order_email_body(order, items))


def send_contact_message(mailer: Mailer, message: ContactMessage) -> bool:
    if not mailer.admin_address:
        logger.warning("No admin address configured, dropping contact message from %s", message.email)
        return False
    text = f"Contact Us Message\n\nName: {message.name}\nEmail: {message.email}\nMessage: {message.message}"
    return mailer.send(mailer.admin_address, "Contact Us Message", text)
