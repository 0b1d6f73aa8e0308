import logging
import smtplib
from email.message import EmailMessage

from .config import Settings

logger = logging.getLogger(__name__)


def send_delivery_otp_email(
    settings: Settings,
    to_email: str,
    name: str | None,
    order_number: str,
    otp: str,
):
    msg = EmailMessage()
    msg["Subject"] = f"Delivery code for order {order_number}"
    msg["From"] = settings.email_host_user
    msg["To"] = to_email

    msg.set_content(
        f"""
Hi {name or 'there'},

Your order {order_number} is on its way.

Share this code with the delivery partner to receive it:

{otp}

This code is valid for {settings.delivery_otp_ttl_minutes} minutes.

If you did not place this order, ignore this email.
"""
    )

    try:
        with smtplib.SMTP(settings.email_host, settings.email_port) as server:
            server.starttls()
            server.login(settings.email_host_user, settings.email_host_password)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        # Runs as a background task; the code is still shown in the app
        logger.error("Could not email delivery code for order %s: %s", order_number, exc)
