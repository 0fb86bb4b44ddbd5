# users/views.py
"""
Account endpoints. Sign-up and login share the 'auth' throttle scope.
"""

import logging

from django.db import IntegrityError
from rest_framework import generics, status
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView

from core.middleware import get_client_ip
from .serializers import AccountSerializer, LoginSerializer, RegistrationSerializer

logger = logging.getLogger(__name__)


class AuthThrottleMixin:
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'auth'


class RegisterView(AuthThrottleMixin, generics.CreateAPIView):
    """
    POST /api/auth/register/

    Creates a client account and signs it in straight away.
    """
    serializer_class = RegistrationSerializer
    permission_classes = (AllowAny,)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            user = serializer.save()
        except IntegrityError:
            # Two sign-ups with the same address raced past the uniqueness check
            raise ValidationError({'email': ["A user with this email already exists."]})

        logger.info(f"Account {user.email} registered from {get_client_ip(request)}")

        refresh = RefreshToken.for_user(user)
        return Response({
            'message': 'Registration successful',
            'user': AccountSerializer(user).data,
            'tokens': {'access': str(refresh.access_token), 'refresh': str(refresh)},
        }, status=status.HTTP_201_CREATED)


class LoginView(AuthThrottleMixin, TokenObtainPairView):
    """POST /api/auth/login/"""
    serializer_class = LoginSerializer

    def post(self, request, *args, **kwargs):
        response = super().post(request, *args, **kwargs)
        logger.info(f"Login for {request.data.get('email', '?')} from {get_client_ip(request)}")
        return response


class ProfileView(generics.RetrieveUpdateAPIView):
    """GET/PUT/PATCH /api/user/profile/"""
    serializer_class = AccountSerializer
    permission_classes = (IsAuthenticated,)

    def get_object(self):
        return self.request.user

    def perform_update(self, serializer):
        changed = sorted(serializer.validated_data)
        user = serializer.save()
        logger.info(f"Profile of {user.email} updated: {', '.join(changed) or 'nothing'}")
