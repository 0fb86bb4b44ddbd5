# quotes/services.py
"""
Quote request intake: validate, sanitize, store, notify, acknowledge.
"""

import logging

from .exceptions import ValidationFailed
from .models import QuoteRequest
from .serializers import QuoteReceiptSerializer, QuoteSubmissionSerializer
from .tasks import dispatch_after_commit, send_new_quote_notification

logger = logging.getLogger(__name__)

MAX_USER_AGENT_LENGTH = 500


def submit_quote_request(service_id, payload, ip_address=None, user_agent='', user=None):
    """
    Record a new quote request for `service_id` and return its receipt:
    {'quoteId', 'serviceId', 'timestamp'}.

    Raises ValidationFailed listing every invalid field; nothing is stored in
    that case. The admin notification is queued after commit and its failure
    never affects the receipt.
    """
    if hasattr(payload, 'dict'):
        # QueryDict from a form-encoded body
        data = payload.dict()
    elif isinstance(payload, dict):
        data = dict(payload)
    else:
        data = {}
    data['serviceId'] = service_id

    serializer = QuoteSubmissionSerializer(data=data)
    if not serializer.is_valid():
        logger.info(f"Quote request for service {service_id} rejected: {sorted(serializer.errors)}")
        raise ValidationFailed(serializer.errors)

    fields = serializer.to_store_fields()
    if user is not None and not user.is_authenticated:
        user = None

    quote = QuoteRequest.objects.create_request(
        **fields,
        ip_address=ip_address or None,
        user_agent=(user_agent or '')[:MAX_USER_AGENT_LENGTH],
        user=user,
    )

    dispatch_after_commit(send_new_quote_notification, str(quote.pk))

    return QuoteReceiptSerializer(quote).data
