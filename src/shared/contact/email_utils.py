"""Email utilities for relaying contact form submissions over SMTP."""

import html
import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import NamedTuple, Optional

from src.shared.config.settings import get_smtp_settings


class ContactSubmission(NamedTuple):
    """A submission whose fields have already been sanitized."""
    first_name: str
    last_name: str
    email: str
    message: str


def single_line(value: str) -> str:
    """Collapse every whitespace run, including CR and LF, to a single space."""
    return " ".join(value.split())


class NotificationMessage(NamedTuple):
    sender: str
    recipient: Optional[str]
    reply_to: str
    subject: str
    text_body: str
    html_body: str


def build_contact_message(submission: ContactSubmission, received_at: Optional[datetime] = None) -> NotificationMessage:
    """
    Render a sanitized submission into the contact notification email.

    Args:
        submission: Sanitized contact form fields
        received_at: Time the submission was received (defaults to now)

    Returns:
        NotificationMessage with plain text and HTML bodies
    """
    settings = get_smtp_settings()
    received_at = received_at or datetime.now()
    # Names may contain any whitespace; headers must stay on one line
    full_name = single_line(f"{submission.first_name} {submission.last_name}")
    received = received_at.strftime("%A, %B %d, %Y %I:%M %p")

    text_body = f"""
New contact form submission from your portfolio website:

Name: {full_name}
Email: {submission.email}
Received: {received}

Message:
{submission.message}

---
This message was sent from your portfolio contact form.
Reply directly to this email to respond to {full_name} ({submission.email}).
"""

    safe_name = html.escape(full_name)
    safe_first_name = html.escape(single_line(submission.first_name))
    safe_email = html.escape(submission.email)
    safe_message = html.escape(submission.message)

    html_body = f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="margin: 0; padding: 0; font-family: Arial, sans-serif; background-color: #f4f4f4;">
    <div style="max-width: 600px; margin: 20px auto; background-color: #ffffff; border-radius: 8px; overflow: hidden;">
        <div style="background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: #ffffff; padding: 30px 20px; text-align: center;">
            <h1 style="margin: 0; font-size: 24px;">New Portfolio Contact</h1>
            <p style="margin: 10px 0 0 0; font-size: 14px;">Someone is interested in working with you!</p>
        </div>

        <div style="padding: 30px 20px;">
            <div style="background-color: #f8f9fa; border-left: 4px solid #667eea; padding: 15px; margin-bottom: 20px; border-radius: 4px;">
                <div style="font-weight: bold; color: #667eea; font-size: 12px; text-transform: uppercase;">Contact Name</div>
                <div style="color: #333333; font-size: 16px; margin-bottom: 10px;">{safe_name}</div>
                <div style="font-weight: bold; color: #667eea; font-size: 12px; text-transform: uppercase;">Email Address</div>
                <div style="color: #333333; font-size: 16px; margin-bottom: 10px;">
                    <a href="mailto:{safe_email}" style="color: #667eea; text-decoration: none;">{safe_email}</a>
                </div>
                <div style="color: #999999; font-size: 12px; margin-top: 10px;">Received: {received}</div>
            </div>

            <div style="border: 1px solid #e0e0e0; padding: 20px; border-radius: 4px;">
                <div style="font-weight: bold; color: #667eea; font-size: 14px; margin-bottom: 10px; text-transform: uppercase;">Message</div>
                <div style="color: #333333; font-size: 15px; line-height: 1.6; white-space: pre-wrap;">{safe_message}</div>
            </div>

            <div style="text-align: center; margin: 30px 0;">
                <a href="mailto:{safe_email}?subject=Re: Portfolio Contact"
                   style="display: inline-block; background: #667eea; color: white; padding: 12px 30px; text-decoration: none; border-radius: 25px; font-weight: bold;">
                    Reply to {safe_first_name}
                </a>
            </div>
        </div>

        <div style="background-color: #f8f9fa; padding: 20px; text-align: center; color: #666666; font-size: 12px; border-top: 1px solid #e0e0e0;">
            <p style="margin: 0;">This message was sent from your portfolio contact form</p>
        </div>
    </div>
</body>
</html>
"""

    return NotificationMessage(
        sender=formataddr((full_name, settings["user"] or "")),
        recipient=settings["recipient"],
        reply_to=submission.email,
        subject=f"New Portfolio Contact from {full_name}",
        text_body=text_body,
        html_body=html_body,
    )


def send_contact_email(notification: NotificationMessage) -> bool:
    """
    Send the contact notification through the configured SMTP server.

    Returns:
        True if email sent successfully, False otherwise. The failure cause is
        only logged.
    """
    try:
        settings = get_smtp_settings()

        if not settings["user"] or not settings["password"]:
            logging.error("SMTP credentials not configured")
            return False

        if not notification.recipient:
            logging.error("Contact recipient not configured")
            return False

        header_values = (notification.sender, notification.recipient, notification.reply_to, notification.subject)
        if any("\r" in value or "\n" in value for value in header_values):
            logging.error("Refusing to send contact form email with a line break in a header")
            return False

        msg = MIMEMultipart("alternative")
        msg["From"] = notification.sender
        msg["To"] = notification.recipient
        msg["Reply-To"] = notification.reply_to  # Allow replying directly to the submitter
        msg["Subject"] = notification.subject

        msg.attach(MIMEText(notification.text_body, "plain"))
        msg.attach(MIMEText(notification.html_body, "html"))

        with smtplib.SMTP(settings["host"], settings["port"], timeout=settings["timeout"]) as server:
            server.starttls()  # Enable encryption
            server.login(settings["user"], settings["password"])
            server.send_message(msg)

        logging.info(f"Contact form email sent successfully from {notification.reply_to}")
        return True

    except Exception as e:
        logging.error(f"Failed to send contact form email: {str(e)}", exc_info=True)
        return False


def verify_smtp_transport() -> bool:
    """Check that the SMTP server accepts our credentials. Never raises."""
    settings = get_smtp_settings()
    if not settings["user"] or not settings["password"]:
        logging.warning("SMTP credentials not configured, skipping transport verification")
        return False

    try:
        with smtplib.SMTP(settings["host"], settings["port"], timeout=settings["timeout"]) as server:
            server.starttls()
            server.login(settings["user"], settings["password"])
            server.noop()
    except Exception as e:
        logging.error(f"Email transporter verification failed: {str(e)}", exc_info=True)
        return False

    logging.info("Email server is ready to send messages")
    return True
