# quotes/utils.py
import re

from django.utils.html import strip_tags

MAX_SANITIZED_LENGTH = 10000

# C0/C1 control characters, keeping tab and newline
CONTROL_CHARS_RE = re.compile(r'[\x00-\x08\x0b-\x1f\x7f-\x9f]')


def sanitize_input(value):
    """
    Clean an untrusted text field before it is stored or rendered in an email.
    Never raises; anything that is not a string becomes ''.
    """
    if not isinstance(value, str):
        return ''
    cleaned = strip_tags(value)
    cleaned = cleaned.replace('<', '').replace('>', '')
    cleaned = CONTROL_CHARS_RE.sub('', cleaned)
    return cleaned.strip()[:MAX_SANITIZED_LENGTH]


def sanitize_search_query(query, max_length=100):
    if not query or not isinstance(query, str):
        return ''
    return sanitize_input(query)[:max_length].strip()


def normalize_email(email):
    return (email or '').strip().lower()
