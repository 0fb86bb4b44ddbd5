import os
from django.core.management.base import BaseCommand, CommandError
from users.models import CustomUser


class Command(BaseCommand):
    help = 'Creates an administrator non-interactively from ADMIN_EMAIL / ADMIN_PASSWORD'

    def add_arguments(self, parser):
        parser.add_argument(
            '--role',
            choices=[CustomUser.Role.ADMIN, CustomUser.Role.SUPER_ADMIN],
            default=CustomUser.Role.SUPER_ADMIN,
            help='admin moderates quote requests; super_admin also gets Django superuser rights',
        )

    def handle(self, *args, **options):
        email = CustomUser.objects.normalize_email(os.environ.get('ADMIN_EMAIL'))
        password = os.environ.get('ADMIN_PASSWORD')
        role = options['role']

        if not email or not password:
            self.stdout.write(self.style.ERROR(
                'ADMIN_EMAIL or ADMIN_PASSWORD not set. Skipping.'
            ))
            return

        user = CustomUser.objects.filter(email=email).first()
        if user is not None:
            if user.role != role:
                raise CommandError(f"{email} already exists with role '{user.role}'.")
            self.stdout.write(self.style.WARNING(f"Administrator {email} already exists."))
            return

        if role == CustomUser.Role.SUPER_ADMIN:
            CustomUser.objects.create_superuser(email=email, password=password)
        else:
            CustomUser.objects.create_user(email=email, password=password, role=role, is_staff=True)

        self.stdout.write(self.style.SUCCESS(f"Administrator {email} created with role '{role}'."))
