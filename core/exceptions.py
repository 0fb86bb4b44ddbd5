# core/exceptions.py
"""
API-wide exception handler.

Every error response shares one shape:
    {"message": "...", "errors": [{"field": "...", "message": "..."}]}
Only validation errors carry the "errors" list. Anything unexpected is
reduced to a generic message; details stay in the server logs.
"""

import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = 'An unexpected error occurred. Please try again later.'


def flatten_errors(detail, prefix=''):
    """
    Turn DRF's nested error detail into a flat list of {field, message}.
    """
    errors = []
    if isinstance(detail, dict):
        for field, value in detail.items():
            name = f'{prefix}.{field}' if prefix else str(field)
            errors.extend(flatten_errors(value, name))
    elif isinstance(detail, (list, tuple)):
        for item in detail:
            errors.extend(flatten_errors(item, prefix))
    else:
        errors.append({'field': prefix or 'non_field_errors', 'message': str(detail)})
    return errors


def api_exception_handler(exc, context):
    view = context.get('view')

    if isinstance(exc, DatabaseError):
        logger.error(
            f"Database error in {view.__class__.__name__ if view else 'unknown view'}: {exc}",
            exc_info=True,
        )
        return Response(
            {'message': GENERIC_ERROR_MESSAGE},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    response = exception_handler(exc, context)
    if response is None:
        # Unhandled: ErrorHandlingMiddleware renders the generic 500
        return None

    if isinstance(exc, ValidationError):
        response.data = {
            'message': 'Invalid data.',
            'errors': flatten_errors(exc.detail),
        }
    elif response.status_code >= 500:
        logger.error(f"Server error: {exc}", exc_info=True)
        response.data = {'message': GENERIC_ERROR_MESSAGE}
    else:
        detail = getattr(exc, 'detail', None)
        response.data = {'message': str(detail) if detail is not None else str(exc)}

    return response
