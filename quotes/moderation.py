# quotes/moderation.py
"""
Status workflow for quote requests.

    pending      -> in_progress | quoted | cancelled
    in_progress  -> quoted | cancelled
    quoted       -> accepted | rejected | cancelled
    accepted, rejected, cancelled are terminal

Re-applying the current status is always allowed and changes nothing.
With the 'permissive' policy any status may follow any other; the
timestamps below are still set only once.
"""

from collections import namedtuple
import logging

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import transaction
from django.utils import timezone

from .exceptions import InvalidTransition, ValidationFailed
from .models import QuoteRequest
from .tasks import dispatch_after_commit, send_status_change_notification

logger = logging.getLogger(__name__)

Status = QuoteRequest.Status

STRICT = 'strict'
PERMISSIVE = 'permissive'
POLICIES = (STRICT, PERMISSIVE)

TRANSITIONS = {
    Status.PENDING: {Status.IN_PROGRESS, Status.QUOTED, Status.CANCELLED},
    Status.IN_PROGRESS: {Status.QUOTED, Status.CANCELLED},
    Status.QUOTED: {Status.ACCEPTED, Status.REJECTED, Status.CANCELLED},
    Status.ACCEPTED: set(),
    Status.REJECTED: set(),
    Status.CANCELLED: set(),
}

RESOLVED_STATUSES = frozenset({Status.ACCEPTED, Status.REJECTED, Status.CANCELLED})

TransitionResult = namedtuple('TransitionResult', ['quote', 'previous_status', 'status_changed'])


def get_policy(policy=None):
    policy = (policy or getattr(settings, 'QUOTE_TRANSITION_POLICY', STRICT)).lower()
    if policy not in POLICIES:
        raise ImproperlyConfigured(f"QUOTE_TRANSITION_POLICY must be one of {POLICIES}, got '{policy}'")
    return policy


def is_transition_allowed(current, requested, policy=STRICT):
    if current == requested or policy == PERMISSIVE:
        return True
    return requested in TRANSITIONS.get(current, set())


def transition_timestamps(quote, new_status, now):
    """
    Audit timestamps to write when `quote` moves to `new_status`.
    Fields that already hold a value are never returned.
    """
    stamps = {}
    if quote.responded_at is None and new_status != Status.PENDING:
        stamps['responded_at'] = now
    if quote.quoted_at is None and new_status == Status.QUOTED:
        stamps['quoted_at'] = now
    if quote.resolved_at is None and new_status in RESOLVED_STATUSES:
        stamps['resolved_at'] = now
    return stamps


def set_status(pk, new_status, notes=None, assigned_to=None, policy=None):
    """
    Move a quote request to `new_status`, optionally updating notes and the
    assignee in the same write. `None` leaves notes/assignee untouched.

    Raises InvalidTransition when the policy forbids the edge, ValidationFailed
    for an unknown status and QuoteRequestNotFound for an unknown id. The
    requester is emailed after commit when the status actually changed.
    """
    policy = get_policy(policy)
    if new_status not in Status.values:
        raise ValidationFailed({'status': [f"'{new_status}' is not a valid status."]})

    with transaction.atomic():
        quote = QuoteRequest.objects.get_for_update(pk)
        previous_status = quote.status

        if not is_transition_allowed(previous_status, new_status, policy):
            logger.warning(f"Rejected transition {previous_status} -> {new_status} on quote request {quote.pk}")
            raise InvalidTransition(previous_status, new_status)

        status_changed = previous_status != new_status
        changes = {'status': new_status}
        if status_changed:
            changes.update(transition_timestamps(quote, new_status, timezone.now()))
        if notes is not None:
            changes['notes'] = notes
        if assigned_to is not None:
            changes['assigned_to'] = assigned_to

        quote = QuoteRequest.objects.apply_staff_update(quote, **changes)

        if status_changed:
            dispatch_after_commit(send_status_change_notification, str(quote.pk), previous_status)

    return TransitionResult(quote, previous_status, status_changed)


def moderate(pk, data, policy=None):
    """
    Apply a validated moderation payload ({status?, notes?, assigned_to?}).
    An explicit `assigned_to: None` clears the assignee.
    """
    with transaction.atomic():
        if 'status' in data:
            result = set_status(
                pk,
                data['status'],
                notes=data.get('notes'),
                assigned_to=data.get('assigned_to'),
                policy=policy,
            )
            if 'assigned_to' in data and data['assigned_to'] is None:
                quote = QuoteRequest.objects.update_staff_fields(pk, assigned_to=None)
                result = result._replace(quote=quote)
            return result

        fields = {name: data[name] for name in ('notes', 'assigned_to') if name in data}
        quote = QuoteRequest.objects.update_staff_fields(pk, **fields)
        return TransitionResult(quote, quote.status, False)
