"""Transactional email: SMTP delivery plus the welcome/invoice/reminder templates."""
from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formataddr
from html import escape
from typing import Iterable, Tuple

from app.config import settings

logger = logging.getLogger(__name__)


def _build_sender() -> str:
    return formataddr((settings.mail_default_name, settings.mail_default_sender))


def send_email(
    *, to: str | Iterable[str], subject: str, html_body: str
) -> Tuple[bool, str | None]:
    """Send an HTML email via SMTP. Returns ``(sent, error)``, never raises."""
    recipients = list(to) if isinstance(to, (list, tuple, set)) else [to]
    recipients = [r for r in recipients if r]
    if not recipients:
        return False, "No recipients provided"
    if not settings.smtp_host:
        return False, "No email provider configured. Set SMTP_HOST."

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = _build_sender()
    msg["To"] = ", ".join(recipients)
    msg.set_content("This message requires an HTML-capable client.")
    msg.add_alternative(html_body, subtype="html")

    try:
        if settings.smtp_use_ssl:
            context = ssl.create_default_context()
            with smtplib.SMTP_SSL(
                settings.smtp_host, settings.smtp_port, context=context
            ) as server:
                if settings.smtp_username and settings.smtp_password:
                    server.login(settings.smtp_username, settings.smtp_password)
                server.send_message(msg)
        else:
            with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as server:
                if settings.smtp_use_tls:
                    server.starttls(context=ssl.create_default_context())
                if settings.smtp_username and settings.smtp_password:
                    server.login(settings.smtp_username, settings.smtp_password)
                server.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:  # pragma: no cover - network dependent
        return False, f"SMTP send failed: {exc}"

    logger.info("Sent email '%s' to %s", subject, ", ".join(recipients))
    return True, None


def queue_email(to: str, subject: str, html_body: str) -> None:
    """Fire-and-forget delivery through the worker. Never raises."""
    try:
        from app.tasks.email import send_email_task

        send_email_task.delay(to=to, subject=subject, html_body=html_body)
    except Exception as e:
        logger.exception("Failed to queue email '%s' to %s: %s", subject, to, e)


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


def _layout(color: str, body: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: auto;'
        ' border: 1px solid #ddd; border-radius: 10px; overflow: hidden;">'
        f'<div style="background-color: {color}; padding: 20px; text-align: center;">'
        f'<h1 style="color: #fff; margin: 0;">{settings.brand_name}</h1></div>'
        f'<div style="padding: 20px; color: #333;">{body}'
        f"<p>Thank you,<br>The {settings.brand_name} Team</p></div></div>"
    )


def welcome_email(company_name: str, email: str) -> tuple[str, str]:
    login_link = f"{settings.frontend_url}/login"
    body = (
        f"<h2>Welcome {escape(company_name)}!</h2>"
        "<p>Your company account has been successfully created.</p>"
        f"<p>Sign in with <strong>{escape(email)}</strong> and the password you chose.</p>"
        f'<p><a href="{login_link}">Login Now</a></p>'
    )
    return f"Welcome to {settings.brand_name} - {company_name}", _layout("#22BC66", body)


def invoice_email(payer_name: str, invoice) -> tuple[str, str]:
    lines = "".join(
        f"<li><strong>{escape(str(item['description']))}:</strong> ${item['amount']:.2f}</li>"
        for item in (invoice.other_invoices or [])
    )
    body = (
        f"<h2>Hello {escape(payer_name)},</h2>"
        f"<p>Here is your invoice for {invoice.period}:</p><ul>"
        f"<li><strong>Monthly plan:</strong> ${invoice.monthly_amount:.2f}</li>"
        f"<li><strong>Documents shared:</strong> {invoice.documents_shared}"
        f" (${invoice.shared_amount:.4f})</li>"
        f"<li><strong>Documents downloaded:</strong> {invoice.documents_downloaded}"
        f" (${invoice.download_amount:.4f})</li>"
        f"<li><strong>Documents uploaded:</strong> {invoice.documents_uploaded}"
        f" (${invoice.upload_amount:.4f})</li>"
        f"{lines}"
        f"<li><strong>Total:</strong> ${invoice.value:.4f}</li></ul>"
        f"<p>Payment is due by {invoice.due_date:%d %B %Y}.</p>"
    )
    return f"Invoice {invoice.period} - {payer_name}", _layout("#0056D2", body)


def reminder_email(payer_name: str, invoice) -> tuple[str, str]:
    body = (
        f"<h2>Hello {escape(payer_name)},</h2>"
        f"<p>Your invoice for {invoice.period} of <strong>${invoice.value:.4f}"
        f"</strong> has not been submitted yet.</p>"
        f"<p>It is due by {invoice.due_date:%d %B %Y}.</p>"
    )
    return f"Reminder: unpaid invoice {invoice.period}", _layout("#D2302C", body)
