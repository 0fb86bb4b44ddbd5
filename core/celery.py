# core/celery.py
"""
Celery application for the Expérience Tech backend.

Only the quote notification emails travel through the broker. They land on
the ``notifications`` queue so a slow SMTP relay never holds up anything
else a worker may pick up.
"""

import logging
import os

from celery import Celery, signals
from kombu import Queue

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'core.settings.base')

logger = logging.getLogger(__name__)

NOTIFICATION_QUEUE = 'notifications'

app = Celery('xptech')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

app.conf.task_default_queue = 'default'
app.conf.task_queues = (
    Queue('default'),
    Queue(NOTIFICATION_QUEUE),
)
app.conf.task_routes = {
    'quotes.tasks.*': {'queue': NOTIFICATION_QUEUE},
}
# An email that went out must not be sent twice when a worker dies after
# the SMTP call, so acknowledgement waits for the task to finish.
app.conf.task_acks_late = True
app.conf.task_reject_on_worker_lost = True
app.conf.result_extended = True
app.conf.result_expires = 24 * 3600


def _quote_ref(args, kwargs):
    """First positional argument of a quote task is always the quote id."""
    if args:
        return args[0]
    return (kwargs or {}).get('quote_id', '-')


@signals.task_prerun.connect
def log_notification_start(sender=None, task_id=None, task=None, args=None, kwargs=None, **extra):
    logger.info(f"{task.name} [{task_id}] started for quote {_quote_ref(args, kwargs)}")


@signals.task_postrun.connect
def log_notification_end(sender=None, task_id=None, task=None, args=None, kwargs=None,
                         retval=None, state=None, **extra):
    logger.info(f"{task.name} [{task_id}] for quote {_quote_ref(args, kwargs)} ended: {state}")


@signals.task_retry.connect
def log_notification_retry(sender=None, request=None, reason=None, **extra):
    attempt = (request.retries or 0) + 1 if request else '?'
    logger.warning(f"{sender.name} [{request.id if request else '-'}] attempt {attempt} will be retried: {reason}")


@signals.task_failure.connect
def log_notification_failure(sender=None, task_id=None, exception=None, args=None, kwargs=None, **extra):
    logger.error(
        f"{sender.name} [{task_id}] gave up on quote {_quote_ref(args, kwargs)}: {exception}",
        exc_info=exception,
    )


@signals.worker_ready.connect
def announce_worker(sender=None, **extra):
    logger.info(f"Notification worker {sender.hostname} listening on '{NOTIFICATION_QUEUE}'")


@signals.worker_shutdown.connect
def farewell_worker(sender=None, **extra):
    logger.info(f"Notification worker {getattr(sender, 'hostname', '?')} stopping")
