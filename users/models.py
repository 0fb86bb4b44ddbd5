# users/models.py

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from core.validators import validate_phone_number
from .managers import CustomUserManager


class CustomUser(AbstractBaseUser, PermissionsMixin):
    """
    Platform account, identified by email.

    Anyone may sign up as a client. Quote requests are moderated only by
    accounts holding one of ``MODERATING_ROLES`` (or Django superusers).
    """

    class Role(models.TextChoices):
        CLIENT = 'client', 'Client'
        STUDENT = 'student', 'Student'
        MODERATOR = 'moderator', 'Moderator'
        ADMIN = 'admin', 'Admin'
        SUPER_ADMIN = 'super_admin', 'Super Admin'

    # 'moderator' is a community role and does not reach the quote inbox.
    MODERATING_ROLES = (Role.ADMIN, Role.SUPER_ADMIN)

    email = models.EmailField(unique=True)
    first_name = models.CharField(max_length=50, blank=True)
    last_name = models.CharField(max_length=50, blank=True)
    phone = models.CharField(
        max_length=20,
        blank=True,
        default='',
        validators=[validate_phone_number],
        help_text='International format, e.g. +23566000000',
    )
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.CLIENT)

    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    date_joined = models.DateTimeField(auto_now_add=True)

    objects = CustomUserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    def __str__(self):
        return self.email

    @property
    def full_name(self):
        return ' '.join(part for part in (self.first_name, self.last_name) if part)

    @property
    def can_moderate_quotes(self):
        return self.is_superuser or self.role in self.MODERATING_ROLES
