"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backend.projects.models import Project
from backend.projects.stages import Stage
from decimal import Decimal
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False, groups=()):
        """Create a test user, optionally in the given application groups"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        user = User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )
        for name in groups:
            group, _ = Group.objects.get_or_create(name=name)
            user.groups.add(group)
        return user

    @staticmethod
    def create_project(customer_name=None, status='active', current_stage=None,
                       proposal_amount=None, kwh=None, start_date=None, created_by=None,
                       customer_address=''):
        """Create a test project"""
        if customer_name is None:
            customer_name = f'Customer_{TestDataFactory.random_string(6)}'
        if current_stage is None:
            current_stage = Stage.ADVANCE_PAYMENT_DONE.value
        return Project.objects.create(
            customer_name=customer_name,
            customer_address=customer_address,
            status=status,
            current_stage=current_stage,
            proposal_amount=proposal_amount if proposal_amount is not None else Decimal('100000.00'),
            kwh=kwh if kwh is not None else Decimal('5.00'),
            start_date=start_date,
            created_by=created_by
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
