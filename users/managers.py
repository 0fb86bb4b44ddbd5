# users/managers.py

from django.contrib.auth.base_user import BaseUserManager
from django.db.models import Q


class CustomUserManager(BaseUserManager):
    """
    Creates accounts keyed on a lowercased, trimmed email.
    """
    use_in_migrations = True

    def normalize_email(self, email):
        return (email or '').strip().lower()

    def create_user(self, email, password=None, **extra_fields):
        email = self.normalize_email(email)
        if not email:
            raise ValueError('The email address must be set')
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        for flag in ('is_staff', 'is_superuser', 'is_active'):
            extra_fields.setdefault(flag, True)
            if extra_fields[flag] is not True:
                raise ValueError(f'Superuser must have {flag}=True.')
        extra_fields.setdefault('role', self.model.Role.SUPER_ADMIN)
        return self.create_user(email, password, **extra_fields)

    def quote_moderators(self):
        """Active accounts that may be assigned a quote request."""
        return self.filter(
            Q(is_superuser=True) | Q(role__in=self.model.MODERATING_ROLES),
            is_active=True,
        )
