# quotes/notifications.py
"""
Email notifications for the quote workflow.

The transport is a Mailer chosen once from settings by build_mailer():

    SMTPMailer          credentials present, sends through Django's mail backend
    MockMailer          credentials absent outside production, sends nothing
    UnconfiguredMailer  credentials absent in production, every send raises

NotificationDispatcher renders the templates and hands messages to whichever
mailer it was given. It never touches the database; the Celery tasks in
quotes/tasks.py load the record and decide what to do with failures.
"""

import logging
import smtplib
from email.utils import formataddr, make_msgid

from django.conf import settings
from django.core.mail import EmailMultiAlternatives, get_connection
from django.template.loader import render_to_string
from django.utils import timezone

from .exceptions import NotificationDeliveryFailed, ServiceNotConfigured

logger = logging.getLogger(__name__)

PRODUCTION_ENVIRONMENTS = ('production', 'prod')


class SMTPMailer:

    def __init__(self, host, port, username, password, use_tls=True, from_name='', from_email='', timeout=10):
        self.from_email = from_email or username
        self.from_address = formataddr((from_name, self.from_email)) if from_name else self.from_email
        self.connection = get_connection(
            fail_silently=False,
            host=host,
            port=port,
            username=username,
            password=password,
            use_tls=use_tls,
            timeout=timeout,
        )

    def send(self, to, subject, text_body, html_body=None):
        message_id = make_msgid(domain=self.from_email.rpartition('@')[2] or None)
        message = EmailMultiAlternatives(
            subject=subject,
            body=text_body,
            from_email=self.from_address,
            to=[to],
            headers={'Message-ID': message_id},
            connection=self.connection,
        )
        if html_body:
            message.attach_alternative(html_body, 'text/html')

        try:
            message.send(fail_silently=False)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationDeliveryFailed(f"Could not deliver '{subject}' to {to}: {exc}") from exc

        return {'success': True, 'message_id': message_id}


class MockMailer:
    """Stands in for the transport when no credentials are configured."""

    def send(self, to, subject, text_body, html_body=None):
        logger.warning(f"Email credentials not configured. Email not sent: {to} ({subject})")
        return {
            'success': True,
            'message_id': f"mock-{int(timezone.now().timestamp() * 1000)}",
            'preview': f"Email would be sent to {to}",
        }


class UnconfiguredMailer:

    def send(self, to, subject, text_body, html_body=None):
        raise ServiceNotConfigured('Email service not configured')


def build_mailer():
    """
    Pick the transport from the current mail settings.
    """
    username = settings.EMAIL_HOST_USER
    password = settings.EMAIL_HOST_PASSWORD

    if username and password:
        return SMTPMailer(
            host=settings.EMAIL_HOST,
            port=settings.EMAIL_PORT,
            username=username,
            password=password,
            use_tls=settings.EMAIL_USE_TLS,
            from_name=settings.EMAIL_FROM_NAME,
            from_email=settings.DEFAULT_FROM_EMAIL,
            timeout=settings.EMAIL_TIMEOUT,
        )

    if settings.APP_ENV in PRODUCTION_ENVIRONMENTS:
        logger.error("EMAIL_HOST_USER/EMAIL_HOST_PASSWORD missing in production; notifications disabled")
        return UnconfiguredMailer()

    return MockMailer()


class NotificationDispatcher:

    def __init__(self, mailer, admin_email=None):
        self.mailer = mailer
        self.admin_email = admin_email if admin_email is not None else (
            settings.QUOTE_ADMIN_EMAIL or settings.EMAIL_HOST_USER
        )

    def notify_admin_of_new_quote(self, service_name, quote):
        """
        Tell the admin mailbox a new quote request arrived.
        Returns the mailer's result, or a failure result when no admin
        address is configured.
        """
        if not self.admin_email:
            logger.warning(f"Admin email not configured; quote request {quote.pk} not announced")
            return {'success': False, 'error': 'Admin email not configured'}

        context = {
            'service_name': service_name,
            'quote': quote,
        }
        subject = f"Nouvelle demande de devis - {service_name}"
        result = self._send('new_quote_admin', self.admin_email, subject, context)
        logger.info(f"Admin notified of quote request {quote.pk} for {service_name}")
        return result

    def notify_requester_of_status_change(self, quote, previous_status):
        context = {
            'quote': quote,
            'service_name': quote.service_name or quote.service_id,
            'previous_status': quote.Status(previous_status).label,
            'current_status': quote.get_status_display(),
        }
        subject = f"Votre demande de devis - {context['service_name']} : {context['current_status']}"
        result = self._send('status_change', quote.email, subject, context)
        logger.info(f"Requester of quote request {quote.pk} notified: {previous_status} -> {quote.status}")
        return result

    def _send(self, template, to, subject, context):
        text_body = render_to_string(f'quotes/email/{template}.txt', context)
        html_body = render_to_string(f'quotes/email/{template}.html', context)
        return self.mailer.send(to, subject, text_body, html_body)
