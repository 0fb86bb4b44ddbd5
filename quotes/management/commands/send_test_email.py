from django.core.management.base import BaseCommand, CommandError

from quotes.exceptions import NotificationDeliveryFailed, ServiceNotConfigured
from quotes.notifications import MockMailer, build_mailer


class Command(BaseCommand):
    help = 'Send a test email through the transport used for quote notifications'

    def add_arguments(self, parser):
        parser.add_argument('email', type=str, help='Recipient email address for the test message')

    def handle(self, *args, **options):
        recipient = options['email']
        mailer = build_mailer()
        self.stdout.write(f"Mail transport: {type(mailer).__name__}")

        try:
            result = mailer.send(
                recipient,
                'Expérience Tech - Email de test',
                "Ceci est un email de test. Si vous l'avez reçu, l'envoi des notifications est configuré.",
            )
        except (ServiceNotConfigured, NotificationDeliveryFailed) as exc:
            raise CommandError(f'Failed to send email: {exc}')

        if isinstance(mailer, MockMailer):
            self.stdout.write(self.style.WARNING(
                'EMAIL_HOST_USER/EMAIL_HOST_PASSWORD not set; nothing was sent.'
            ))
            return

        self.stdout.write(self.style.SUCCESS(
            f"Successfully sent test email to {recipient} ({result['message_id']})"
        ))
