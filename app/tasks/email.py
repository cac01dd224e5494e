import logging

from app.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="app.tasks.email.send_email_task", ignore_result=True)
def send_email_task(to: str, subject: str, html_body: str) -> dict:
    """Deliver a single email; failures are logged, not retried."""
    from app.services.email import send_email

    sent, error = send_email(to=to, subject=subject, html_body=html_body)
    if not sent:
        logger.warning("Email '%s' to %s not sent: %s", subject, to, error)
    return {"sent": sent, "error": error}
