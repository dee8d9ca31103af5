"""Utility functions for the application."""

import smtplib

from flask import current_app, render_template
from flask_mail import Message

from .extensions import mail


class EmailError(Exception):
    """Raised when a notification email cannot be delivered."""

    pass


def send_email(to, subject, template, **kwargs):
    """Render ``template`` and mail it to a single recipient.

    Raises:
        EmailError: If the mail server rejects or cannot take the message.
    """
    msg = Message(
        subject,
        recipients=[to],
        html=render_template(template, **kwargs),
        sender=current_app.config["MAIL_DEFAULT_SENDER"],
    )
    try:
        mail.send(msg)
    except smtplib.SMTPAuthenticationError as e:
        raise EmailError(
            f"SMTP authentication failed ({e.smtp_code}). "
            "Check MAIL_USERNAME and MAIL_PASSWORD."
        ) from e
    except (smtplib.SMTPException, OSError) as e:
        raise EmailError(f"Failed to send email: {e}") from e
