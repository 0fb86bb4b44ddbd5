# quotes/exceptions.py
"""
Error taxonomy of the quote workflow.

ValidationFailed and QuoteRequestNotFound are DRF exceptions, so views can
let them propagate and the API exception handler renders them. The
notification errors never reach a client: tasks and the intake service
catch and log them.
"""

from rest_framework import status
from rest_framework.exceptions import APIException, NotFound, ValidationError

from core.exceptions import flatten_errors, GENERIC_ERROR_MESSAGE


class ValidationFailed(ValidationError):
    """One or more fields violate a rule. Carries every violation."""

    @property
    def errors(self):
        return flatten_errors(self.detail)

    def fields(self):
        return {error['field'] for error in self.errors}


class InvalidTransition(ValidationFailed):
    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__({
            'status': [f"Cannot move a quote request from '{current}' to '{requested}'."]
        })


class QuoteRequestNotFound(NotFound):
    default_detail = 'Quote request not found.'


class PersistenceFailure(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = GENERIC_ERROR_MESSAGE
    default_code = 'persistence_failure'


class ServiceNotConfigured(Exception):
    """Mail transport credentials are missing in production."""


class NotificationDeliveryFailed(Exception):
    """The mail transport refused or failed to send a message."""
