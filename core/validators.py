# core/validators.py
"""
Field predicates shared by the quote intake and account endpoints.
"""

import re

from django.core.exceptions import ValidationError

EMAIL_REGEX = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

# Optional leading '+', no leading zero, 1-16 digits in total
PHONE_REGEX = re.compile(r'^\+?[1-9]\d{0,15}$')


def is_valid_email(email):
    if not email or not isinstance(email, str):
        return False
    return bool(EMAIL_REGEX.match(email.strip().lower()))


def is_valid_phone(phone):
    if not phone or not isinstance(phone, str):
        return False
    return bool(PHONE_REGEX.match(phone.strip()))


def validate_email_address(value):
    """Django-style validator usable on model and serializer fields."""
    if not is_valid_email(value):
        raise ValidationError('Enter a valid email address.', code='invalid_email')


def validate_phone_number(value):
    if value in (None, ''):
        return
    if not is_valid_phone(value):
        raise ValidationError('Enter a valid phone number.', code='invalid_phone')
