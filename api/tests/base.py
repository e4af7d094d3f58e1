from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, TransactionTestCase
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from api.models import Campaign

User = get_user_model()


class APIFixturesMixin:
    """An API client plus helpers for users and campaigns"""

    def setUp(self):
        super().setUp()
        self.client = APIClient()

    def make_user(self, email='donor@example.com', **extra):
        extra.setdefault('first_name', 'Test')
        extra.setdefault('last_name', 'User')
        return User.objects.create_user(email=email, password='TestPass123!', **extra)

    def make_admin(self, email='admin@example.com'):
        return User.objects.create_superuser(
            email=email, password='TestPass123!', first_name='Site', last_name='Admin'
        )

    def authenticate(self, user):
        token = RefreshToken.for_user(user).access_token
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

    def logout(self):
        self.client.credentials()

    def make_campaign(self, owner=None, code='TF-ABC123', **extra):
        extra.setdefault('title', 'Surgery for Asha')
        extra.setdefault('description', 'Help Asha get heart surgery')
        extra.setdefault('target_amount', Decimal('1000.00'))
        return Campaign.objects.create(created_by=owner, unique_code=code, **extra)


class APITestBase(APIFixturesMixin, TestCase):
    pass


class APITransactionTestBase(APIFixturesMixin, TransactionTestCase):
    """For code paths that depend on real commits (on_commit hooks, constraint races)"""
