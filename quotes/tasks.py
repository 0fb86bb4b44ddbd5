# quotes/tasks.py
"""
Background email delivery for quote requests.
Both tasks are enqueued only after the triggering transaction commits.
"""

from celery import shared_task
from django.db import transaction
import logging

from .exceptions import NotificationDeliveryFailed, QuoteRequestNotFound, ServiceNotConfigured
from .notifications import NotificationDispatcher, build_mailer

logger = logging.getLogger(__name__)

RETRY_COUNTDOWN = 60


def dispatch_after_commit(task, *args):
    """
    Enqueue `task` once the current transaction commits. A broker outage is
    logged and never reaches the caller.
    """
    def enqueue():
        try:
            task.delay(*args)
        except Exception as exc:
            logger.error(f"Could not enqueue {task.name}{args}: {exc}", exc_info=True)

    transaction.on_commit(enqueue)


@shared_task(bind=True, max_retries=3)
def send_new_quote_notification(self, quote_id):
    """
    Email the admin mailbox about a newly submitted quote request.
    """
    from .models import QuoteRequest

    try:
        quote = QuoteRequest.objects.get_by_id(quote_id)
    except QuoteRequestNotFound:
        logger.error(f"Quote request {quote_id} not found; admin notification dropped")
        return {'success': False, 'error': 'Quote request not found'}

    dispatcher = NotificationDispatcher(build_mailer())
    try:
        return dispatcher.notify_admin_of_new_quote(quote.service_name or quote.service_id, quote)
    except ServiceNotConfigured as exc:
        logger.error(f"Admin notification for quote request {quote_id} not sent: {exc}")
        return {'success': False, 'error': str(exc)}
    except NotificationDeliveryFailed as exc:
        logger.warning(
            f"Admin notification for quote request {quote_id} failed "
            f"(attempt {self.request.retries + 1}): {exc}"
        )
        raise self.retry(exc=exc, countdown=RETRY_COUNTDOWN)


@shared_task(bind=True, max_retries=3)
def send_status_change_notification(self, quote_id, previous_status):
    from .models import QuoteRequest

    try:
        quote = QuoteRequest.objects.get_by_id(quote_id)
    except QuoteRequestNotFound:
        logger.error(f"Quote request {quote_id} not found; status notification dropped")
        return {'success': False, 'error': 'Quote request not found'}

    dispatcher = NotificationDispatcher(build_mailer())
    try:
        return dispatcher.notify_requester_of_status_change(quote, previous_status)
    except ServiceNotConfigured as exc:
        logger.error(f"Status notification for quote request {quote_id} not sent: {exc}")
        return {'success': False, 'error': str(exc)}
    except NotificationDeliveryFailed as exc:
        logger.warning(
            f"Status notification for quote request {quote_id} failed "
            f"(attempt {self.request.retries + 1}): {exc}"
        )
        raise self.retry(exc=exc, countdown=RETRY_COUNTDOWN)
