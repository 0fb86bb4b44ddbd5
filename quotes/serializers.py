# quotes/serializers.py

from decimal import ROUND_HALF_UP, Decimal

from django.contrib.auth import get_user_model
from rest_framework import serializers

from core.validators import is_valid_email, is_valid_phone
from .models import (
    BUDGET_DECIMAL_PLACES,
    BUDGET_MAX_DIGITS,
    NAME_MAX_LENGTH,
    NOTES_MAX_LENGTH,
    REQUIREMENTS_MAX_LENGTH,
    QuoteRequest,
)
from .utils import normalize_email, sanitize_input

CustomUser = get_user_model()

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20

BUDGET_STEP = Decimal(1).scaleb(-BUDGET_DECIMAL_PLACES)
BUDGET_MAX_VALUE = Decimal(10) ** (BUDGET_MAX_DIGITS - BUDGET_DECIMAL_PLACES) - BUDGET_STEP


class QuoteSubmissionSerializer(serializers.Serializer):
    """
    Validates a public quote request. Every rule is checked so the client
    gets all field errors in one response.
    """
    serviceId = serializers.CharField(source='service_id', max_length=100)
    serviceName = serializers.CharField(source='service_name', max_length=255, required=False, allow_blank=True)
    name = serializers.CharField(min_length=2, max_length=NAME_MAX_LENGTH)
    email = serializers.CharField(max_length=254)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)
    requirements = serializers.CharField(
        max_length=REQUIREMENTS_MAX_LENGTH,
        required=False,
        allow_blank=True,
        allow_null=True,
    )
    budget = serializers.DecimalField(
        max_digits=None,
        decimal_places=None,
        min_value=Decimal(0),
        max_value=BUDGET_MAX_VALUE,
        required=False,
        allow_null=True,
    )

    def validate_email(self, value):
        if not is_valid_email(value):
            raise serializers.ValidationError("Please provide a valid email address.")
        return normalize_email(value)

    def validate_phone(self, value):
        value = (value or '').strip()
        if value and not is_valid_phone(value):
            raise serializers.ValidationError("Please provide a valid phone number.")
        return value

    def validate_requirements(self, value):
        return value or ''

    def validate_budget(self, value):
        # Any non-negative amount is accepted; storage keeps centimes only.
        if value is None:
            return value
        return value.quantize(BUDGET_STEP, rounding=ROUND_HALF_UP)

    def to_store_fields(self):
        """
        Validated data with free-text fields sanitized, ready for the store.
        """
        data = dict(self.validated_data)
        for field in ('name', 'phone', 'requirements', 'service_name'):
            if field in data:
                data[field] = sanitize_input(data[field])
        data['service_id'] = sanitize_input(data['service_id'])
        if not data.get('service_name'):
            data['service_name'] = data['service_id']
        return data


class QuoteReceiptSerializer(serializers.ModelSerializer):
    quoteId = serializers.UUIDField(source='id', read_only=True)
    serviceId = serializers.CharField(source='service_id', read_only=True)
    timestamp = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = QuoteRequest
        fields = ('quoteId', 'serviceId', 'timestamp')


class QuoteRequestSerializer(serializers.ModelSerializer):
    """
    Full record as shown to moderators.
    """
    serviceId = serializers.CharField(source='service_id', read_only=True)
    serviceName = serializers.CharField(source='service_name', read_only=True)
    statusDisplay = serializers.CharField(source='get_status_display', read_only=True)
    assignedTo = serializers.PrimaryKeyRelatedField(source='assigned_to', read_only=True)
    assignedToEmail = serializers.EmailField(source='assigned_to.email', read_only=True, default=None)
    userId = serializers.PrimaryKeyRelatedField(source='user', read_only=True)
    quotedAt = serializers.DateTimeField(source='quoted_at', read_only=True)
    respondedAt = serializers.DateTimeField(source='responded_at', read_only=True)
    resolvedAt = serializers.DateTimeField(source='resolved_at', read_only=True)
    ipAddress = serializers.IPAddressField(source='ip_address', read_only=True)
    userAgent = serializers.CharField(source='user_agent', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = QuoteRequest
        fields = (
            'id', 'serviceId', 'serviceName', 'name', 'email', 'phone',
            'requirements', 'budget', 'status', 'statusDisplay', 'assignedTo',
            'assignedToEmail', 'notes', 'quotedAt', 'respondedAt', 'resolvedAt',
            'source', 'ipAddress', 'userAgent', 'userId', 'createdAt', 'updatedAt',
        )
        read_only_fields = fields


class QuoteModerationSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=QuoteRequest.Status.choices, required=False)
    notes = serializers.CharField(max_length=NOTES_MAX_LENGTH, required=False, allow_blank=True)
    assignedTo = serializers.PrimaryKeyRelatedField(
        source='assigned_to',
        queryset=CustomUser.objects.filter(is_active=True),
        required=False,
        allow_null=True,
    )

    def validate_notes(self, value):
        return sanitize_input(value)

    def validate_assignedTo(self, value):
        if value is not None and not value.can_moderate_quotes:
            raise serializers.ValidationError("Quote requests can only be assigned to administrators.")
        return value

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Provide at least one of status, notes or assignedTo.")
        return attrs


class QuoteFilterSerializer(serializers.Serializer):
    """
    Query string of the moderation list.
    """
    status = serializers.ChoiceField(choices=QuoteRequest.Status.choices, required=False)
    serviceId = serializers.CharField(source='service_id', max_length=100, required=False)
    search = serializers.CharField(max_length=200, required=False, allow_blank=True)
    dateFrom = serializers.DateField(source='date_from', required=False)
    dateTo = serializers.DateField(source='date_to', required=False)
    page = serializers.IntegerField(min_value=1, required=False, default=1)
    limit = serializers.IntegerField(min_value=1, required=False, default=DEFAULT_PAGE_SIZE)

    def validate_limit(self, value):
        return min(value, MAX_PAGE_SIZE)

    def validate(self, attrs):
        date_from, date_to = attrs.get('date_from'), attrs.get('date_to')
        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError({'dateFrom': "dateFrom must be on or before dateTo."})
        return attrs
