import logging
import uuid

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import MaxLengthValidator, MinValueValidator
from django.db import DatabaseError, models, transaction
from django.db.models import Count, Q

from core.validators import validate_email_address, validate_phone_number
from .exceptions import PersistenceFailure, QuoteRequestNotFound, ValidationFailed
from .utils import normalize_email

logger = logging.getLogger(__name__)

REQUIREMENTS_MAX_LENGTH = 2000
NOTES_MAX_LENGTH = 1000
NAME_MAX_LENGTH = 100
# Budgets are stored in FCFA with two decimals; intake rounds to fit.
BUDGET_MAX_DIGITS = 20
BUDGET_DECIMAL_PLACES = 2

# Fields a requester provides at intake
INTAKE_FIELDS = frozenset({
    'service_id', 'service_name', 'name', 'email', 'phone', 'requirements',
    'budget', 'source', 'ip_address', 'user_agent', 'user',
})

# Fields staff may change after creation
STAFF_FIELDS = frozenset({
    'status', 'assigned_to', 'notes', 'quoted_at', 'responded_at', 'resolved_at',
})


class QuoteRequestQuerySet(models.QuerySet):

    def for_moderation(self, status=None, service_id=None, date_from=None, date_to=None, search=None):
        """
        Filtered listing for the moderation dashboard, newest first.
        """
        queryset = self.select_related('user', 'assigned_to')
        if status:
            queryset = queryset.filter(status=status)
        if service_id:
            queryset = queryset.filter(service_id=service_id)
        if date_from:
            queryset = queryset.filter(created_at__date__gte=date_from)
        if date_to:
            queryset = queryset.filter(created_at__date__lte=date_to)
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search)
                | Q(email__icontains=search)
                | Q(service_name__icontains=search)
            )
        return queryset.order_by('-created_at')

    def status_counts(self):
        counts = {value: 0 for value in QuoteRequest.Status.values}
        rows = self.order_by().values('status').annotate(total=Count('id'))
        for row in rows:
            counts[row['status']] = row['total']
        counts['total'] = sum(counts.values())
        return counts


class QuoteRequestManager(models.Manager.from_queryset(QuoteRequestQuerySet)):
    """
    Storage operations for quote requests. Every write validates the
    record before it reaches the database.
    """

    def create_request(self, **fields):
        unexpected = set(fields) - INTAKE_FIELDS
        if unexpected:
            raise ValueError(f"Not an intake field: {', '.join(sorted(unexpected))}")

        quote = self.model(**fields)
        quote.email = normalize_email(quote.email)
        quote.status = self.model.Status.PENDING
        self._validate(quote)

        try:
            with transaction.atomic():
                quote.save(force_insert=True)
        except DatabaseError as exc:
            logger.error(f"Could not store quote request for service {quote.service_id}: {exc}", exc_info=True)
            raise PersistenceFailure() from exc

        logger.info(f"Quote request {quote.pk} stored for service {quote.service_id}")
        return quote

    def get_by_id(self, pk):
        try:
            return self.select_related('user', 'assigned_to').get(pk=pk)
        except (self.model.DoesNotExist, DjangoValidationError, ValueError):
            raise QuoteRequestNotFound()

    def get_for_update(self, pk):
        """Lock the row for the rest of the current transaction."""
        try:
            return self.select_for_update().get(pk=pk)
        except (self.model.DoesNotExist, DjangoValidationError, ValueError):
            raise QuoteRequestNotFound()

    def apply_staff_update(self, quote, **fields):
        """
        Write staff-facing fields on an already locked instance.
        """
        rejected = set(fields) - STAFF_FIELDS
        if rejected:
            raise ValidationFailed({
                name: ['This field cannot be changed after submission.'] for name in sorted(rejected)
            })

        if 'status' in fields and fields['status'] not in self.model.Status.values:
            raise ValidationFailed({'status': [f"'{fields['status']}' is not a valid status."]})

        for name, value in fields.items():
            setattr(quote, name, value)
        self._validate(quote)

        try:
            quote.save(update_fields=[*fields, 'updated_at'])
        except DatabaseError as exc:
            logger.error(f"Could not update quote request {quote.pk}: {exc}", exc_info=True)
            raise PersistenceFailure() from exc
        return quote

    def update_staff_fields(self, pk, **fields):
        with transaction.atomic():
            quote = self.get_for_update(pk)
            return self.apply_staff_update(quote, **fields)

    @staticmethod
    def _validate(quote):
        try:
            quote.full_clean()
        except DjangoValidationError as exc:
            raise ValidationFailed(exc.message_dict)


class QuoteRequest(models.Model):
    """
    A prospective customer's request for pricing on one of our services.
    Requester fields are fixed at creation; staff fields change through
    moderation only.
    """
    class Status(models.TextChoices):
        PENDING = 'pending', 'En attente'
        IN_PROGRESS = 'in_progress', 'En cours'
        QUOTED = 'quoted', 'Devis envoyé'
        ACCEPTED = 'accepted', 'Accepté'
        REJECTED = 'rejected', 'Refusé'
        CANCELLED = 'cancelled', 'Annulé'

    class Source(models.TextChoices):
        WEBSITE = 'website', 'Website'
        PHONE = 'phone', 'Phone'
        EMAIL = 'email', 'Email'
        ADMIN = 'admin', 'Admin'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Subject
    service_id = models.CharField(max_length=100, help_text="Catalog identifier of the quoted service")
    service_name = models.CharField(max_length=255, blank=True, default='')

    # Requester
    name = models.CharField(max_length=NAME_MAX_LENGTH)
    email = models.CharField(max_length=254, validators=[validate_email_address])
    phone = models.CharField(max_length=20, blank=True, default='', validators=[validate_phone_number])

    # Request detail
    requirements = models.TextField(
        blank=True,
        default='',
        validators=[MaxLengthValidator(REQUIREMENTS_MAX_LENGTH)],
    )
    budget = models.DecimalField(
        max_digits=BUDGET_MAX_DIGITS,
        decimal_places=BUDGET_DECIMAL_PLACES,
        null=True,
        blank=True,
        validators=[MinValueValidator(0)],
        help_text="Indicative budget in FCFA",
    )

    # Lifecycle
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name='assigned_quote_requests',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    notes = models.TextField(
        blank=True,
        default='',
        validators=[MaxLengthValidator(NOTES_MAX_LENGTH)],
        help_text="Internal notes, never shown to the requester",
    )
    quoted_at = models.DateTimeField(null=True, blank=True)
    responded_at = models.DateTimeField(null=True, blank=True)
    resolved_at = models.DateTimeField(null=True, blank=True)

    # Provenance
    source = models.CharField(max_length=20, choices=Source.choices, default=Source.WEBSITE)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True, default='')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name='quote_requests',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = QuoteRequestManager()

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Quote Request'
        verbose_name_plural = 'Quote Requests'
        indexes = [
            models.Index(fields=['service_id'], name='quote_service_idx'),
            models.Index(fields=['email'], name='quote_email_idx'),
            models.Index(fields=['status'], name='quote_status_idx'),
            models.Index(fields=['-created_at'], name='quote_created_idx'),
            models.Index(fields=['status', '-created_at'], name='quote_status_created_idx'),
        ]

    def __str__(self):
        return f"{self.service_name or self.service_id} - {self.email} ({self.get_status_display()})"

    @property
    def is_terminal(self):
        return self.status in (self.Status.ACCEPTED, self.Status.REJECTED, self.Status.CANCELLED)

    def save(self, *args, **kwargs):
        self.email = normalize_email(self.email)
        super().save(*args, **kwargs)
