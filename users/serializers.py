# users/serializers.py

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from core.validators import is_valid_email, is_valid_phone

CustomUser = get_user_model()


class PhoneFieldMixin:
    """Accounts and quote requests accept the same phone formats."""

    def validate_phone(self, value):
        value = (value or '').strip()
        if value and not is_valid_phone(value):
            raise serializers.ValidationError("Enter a valid phone number.")
        return value


class RegistrationSerializer(PhoneFieldMixin, serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, style={'input_type': 'password'})
    password2 = serializers.CharField(write_only=True, style={'input_type': 'password'})

    class Meta:
        model = CustomUser
        fields = ('email', 'first_name', 'last_name', 'phone', 'password', 'password2')
        extra_kwargs = {
            'first_name': {'required': True},
            'last_name': {'required': True},
        }

    def validate_email(self, value):
        email = CustomUser.objects.normalize_email(value)
        if not is_valid_email(email):
            raise serializers.ValidationError("Enter a valid email address.")
        if CustomUser.objects.filter(email=email).exists():
            raise serializers.ValidationError("A user with this email already exists.")
        return email

    def validate(self, attrs):
        if attrs['password'] != attrs.pop('password2'):
            raise serializers.ValidationError({'password': "Password fields didn't match."})
        candidate = CustomUser(**{k: v for k, v in attrs.items() if k != 'password'})
        validate_password(attrs['password'], user=candidate)
        return attrs

    def create(self, validated_data):
        # The role is never taken from the request: sign-ups are clients.
        return CustomUser.objects.create_user(**validated_data)


class AccountSerializer(PhoneFieldMixin, serializers.ModelSerializer):
    """Profile of the signed-in account. Email and role are managed by staff."""
    can_moderate_quotes = serializers.BooleanField(read_only=True)

    class Meta:
        model = CustomUser
        fields = (
            'id', 'email', 'first_name', 'last_name', 'phone', 'role',
            'can_moderate_quotes', 'date_joined',
        )
        read_only_fields = ('id', 'email', 'role', 'date_joined')


class LoginSerializer(TokenObtainPairSerializer):
    """
    Email/password exchange for a JWT pair. The access token carries the
    account role so the admin frontend can decide whether to show the
    quote inbox without another round trip.
    """

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['role'] = user.role
        return token

    def validate(self, attrs):
        attrs[self.username_field] = CustomUser.objects.normalize_email(attrs.get(self.username_field))
        return super().validate(attrs)
