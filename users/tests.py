# users/tests.py
"""
Test suite for accounts: registration, login and profile
Run with: python manage.py test users
"""

import os
from io import StringIO
from unittest.mock import patch

from django.test import TestCase
from django.core.management import call_command
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.urls import reverse
from rest_framework.test import APITestCase
from rest_framework import status
from rest_framework_simplejwt.tokens import AccessToken, RefreshToken

User = get_user_model()


class UserModelTests(TestCase):
    """Test custom user model"""

    def setUp(self):
        self.user_data = {
            'email': 'test@example.td',
            'password': 'testpass123!@#',
            'first_name': 'Test',
            'last_name': 'User'
        }

    def test_create_user(self):
        """Self-created accounts are plain clients"""
        user = User.objects.create_user(**self.user_data)

        self.assertEqual(user.email, self.user_data['email'])
        self.assertTrue(user.check_password(self.user_data['password']))
        self.assertEqual(user.role, User.Role.CLIENT)
        self.assertFalse(user.is_staff)
        self.assertFalse(user.is_superuser)
        self.assertFalse(user.can_moderate_quotes)
        self.assertTrue(user.is_active)

    def test_create_superuser(self):
        user = User.objects.create_superuser(email='root@experiencetech-tchad.com', password='rootpass123!@#')

        self.assertTrue(user.is_staff)
        self.assertTrue(user.is_superuser)
        self.assertEqual(user.role, User.Role.SUPER_ADMIN)
        self.assertTrue(user.can_moderate_quotes)

    def test_moderation_roles(self):
        expected = {
            'client': False,
            'student': False,
            'moderator': False,
            'admin': True,
            'super_admin': True,
        }
        for role, allowed in expected.items():
            user = User(email=f'{role}@example.td', role=role)
            self.assertEqual(user.can_moderate_quotes, allowed, role)

    def test_email_normalization(self):
        user = User.objects.create_user(email='  Test@EXAMPLE.td ', password='testpass123!@#')
        self.assertEqual(user.email, 'test@example.td')

    def test_email_required(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email='', password='testpass123!@#')

    def test_phone_validation(self):
        user = User(email='phone@example.td', phone='0123')
        user.set_password('testpass123!@#')
        with self.assertRaises(ValidationError):
            user.full_clean()

    def test_string_representation_and_full_name(self):
        user = User.objects.create_user(**self.user_data)
        self.assertEqual(str(user), 'test@example.td')
        self.assertEqual(user.full_name, 'Test User')


class UserRegistrationTests(APITestCase):
    """Test user registration endpoint"""

    def setUp(self):
        self.register_url = reverse('auth_register')
        self.valid_data = {
            'email': 'Client@Example.td',
            'password': 'SecurePass123!@#',
            'password2': 'SecurePass123!@#',
            'first_name': 'Amina',
            'last_name': 'Mahamat',
            'phone': '+23566000000',
        }

    def test_register_success(self):
        response = self.client.post(self.register_url, self.valid_data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('tokens', response.data)
        self.assertEqual(response.data['user']['email'], 'client@example.td')
        self.assertEqual(response.data['user']['role'], 'client')

        user = User.objects.get(email='client@example.td')
        self.assertTrue(user.check_password(self.valid_data['password']))

    def test_register_cannot_choose_role(self):
        data = {**self.valid_data, 'role': 'super_admin'}
        response = self.client.post(self.register_url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(User.objects.get(email='client@example.td').role, 'client')

    def test_register_password_mismatch(self):
        data = {**self.valid_data, 'password2': 'DifferentPassword123!@#'}
        response = self.client.post(self.register_url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password', {error['field'] for error in response.data['errors']})

    def test_register_invalid_phone(self):
        data = {**self.valid_data, 'phone': '66 00 00 00'}
        response = self.client.post(self.register_url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('phone', {error['field'] for error in response.data['errors']})

    def test_register_duplicate_email(self):
        User.objects.create_user(email='client@example.td', password='password123')

        response = self.client.post(self.register_url, self.valid_data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', {error['field'] for error in response.data['errors']})

    def test_register_missing_required_fields(self):
        response = self.client.post(
            self.register_url, {'email': 'test@example.td', 'password': 'testpass123'}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class UserAuthenticationTests(APITestCase):
    """Test user login and JWT token functionality"""

    def setUp(self):
        self.login_url = reverse('auth_login')
        self.refresh_url = reverse('auth_refresh')
        self.user = User.objects.create_user(email='test@example.td', password='testpass123!@#')

    def test_login_success(self):
        response = self.client.post(
            self.login_url, {'email': 'test@example.td', 'password': 'testpass123!@#'}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)

    def test_login_normalizes_email_and_carries_role(self):
        response = self.client.post(
            self.login_url, {'email': ' TEST@Example.td ', 'password': 'testpass123!@#'}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        access = AccessToken(response.data['access'])
        self.assertEqual(access['role'], 'client')

    def test_login_wrong_password(self):
        response = self.client.post(
            self.login_url, {'email': 'test@example.td', 'password': 'wrongpassword'}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn('message', response.data)

    def test_token_refresh(self):
        login_response = self.client.post(
            self.login_url, {'email': 'test@example.td', 'password': 'testpass123!@#'}, format='json',
        )

        response = self.client.post(self.refresh_url, {'refresh': login_response.data['refresh']}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)


class UserProfileTests(APITestCase):
    """Test user profile retrieval and update"""

    def setUp(self):
        self.profile_url = reverse('user_profile')
        self.user = User.objects.create_user(
            email='test@example.td',
            password='testpass123!@#',
            first_name='Test',
            last_name='User'
        )
        refresh = RefreshToken.for_user(self.user)
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')

    def test_get_profile(self):
        response = self.client.get(self.profile_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['email'], self.user.email)
        self.assertEqual(response.data['role'], 'client')
        self.assertFalse(response.data['can_moderate_quotes'])

    def test_update_profile(self):
        response = self.client.patch(
            self.profile_url, {'first_name': 'Updated', 'phone': '+23599000000'}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.first_name, 'Updated')
        self.assertEqual(self.user.phone, '+23599000000')

    def test_update_rejects_invalid_phone(self):
        response = self.client.patch(self.profile_url, {'phone': '0123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_escalate_role_or_change_email(self):
        self.client.patch(self.profile_url, {'email': 'new@example.td', 'role': 'admin'}, format='json')

        self.user.refresh_from_db()
        self.assertEqual(self.user.email, 'test@example.td')
        self.assertEqual(self.user.role, 'client')

    def test_profile_unauthenticated(self):
        self.client.credentials()
        response = self.client.get(self.profile_url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class CreateAdminCommandTests(TestCase):
    """Test the create_admin management command"""

    def run_command(self, env, *args):
        out = StringIO()
        with patch.dict(os.environ, env):
            call_command('create_admin', *args, stdout=out)
        return out.getvalue()

    def test_creates_super_admin(self):
        self.run_command({'ADMIN_EMAIL': 'Root@ExperienceTech-Tchad.com', 'ADMIN_PASSWORD': 'rootpass123!@#'})

        user = User.objects.get(email='root@experiencetech-tchad.com')
        self.assertTrue(user.is_superuser)
        self.assertEqual(user.role, User.Role.SUPER_ADMIN)

    def test_creates_admin_role(self):
        self.run_command(
            {'ADMIN_EMAIL': 'admin@experiencetech-tchad.com', 'ADMIN_PASSWORD': 'adminpass123!@#'},
            '--role', 'admin',
        )

        user = User.objects.get(email='admin@experiencetech-tchad.com')
        self.assertFalse(user.is_superuser)
        self.assertTrue(user.is_staff)
        self.assertTrue(user.can_moderate_quotes)

    def test_skips_without_credentials(self):
        output = self.run_command({'ADMIN_EMAIL': '', 'ADMIN_PASSWORD': ''})

        self.assertIn('Skipping', output)
        self.assertEqual(User.objects.count(), 0)

    def test_existing_admin_is_left_alone(self):
        env = {'ADMIN_EMAIL': 'root@experiencetech-tchad.com', 'ADMIN_PASSWORD': 'rootpass123!@#'}
        self.run_command(env)
        output = self.run_command(env)

        self.assertIn('already exists', output)
        self.assertEqual(User.objects.count(), 1)


class ModeratorQueryTests(TestCase):

    def test_quote_moderators(self):
        admin = User.objects.create_user(email='admin@example.td', password='x', role='admin')
        root = User.objects.create_superuser(email='root@example.td', password='x')
        User.objects.create_user(email='mod@example.td', password='x', role='moderator')
        User.objects.create_user(email='gone@example.td', password='x', role='admin', is_active=False)
        User.objects.create_user(email='client@example.td', password='x')

        self.assertEqual(
            set(User.objects.quote_moderators().values_list('email', flat=True)),
            {admin.email, root.email},
        )
