# quotes/signals.py
"""
Audit logging for quote request status changes.
"""

from django.db.models.signals import pre_save
from django.dispatch import receiver
import logging

from .models import QuoteRequest

logger = logging.getLogger(__name__)


@receiver(pre_save, sender=QuoteRequest)
def quote_request_pre_save(sender, instance, **kwargs):
    if instance._state.adding:
        return

    previous = sender.objects.filter(pk=instance.pk).values_list('status', flat=True).first()
    if previous is not None and previous != instance.status:
        logger.info(
            f"Quote request {instance.pk} status change: "
            f"{sender.Status(previous).label} -> {instance.get_status_display()}"
        )
