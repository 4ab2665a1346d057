"""
Test suite for Core module
Tests: capability resolution, auth endpoints, audit logs, user groups command
"""
from io import StringIO
from django.contrib.auth.models import AnonymousUser, Group
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from backend.core.models import AuditLog
from backend.core.serializers import UserSerializer
from backend.core.roles import (
    Capability, RoleResolver, HasCapability, ALL_CAPABILITIES,
    ADMIN_GROUP, FINANCE_GROUP, EDITOR_GROUP, RESTRICTED_GROUP, STAFF_GROUP,
)
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.core.utils import create_audit_log


class RoleResolverTests(TestCase):
    """Test capability resolution from group membership"""

    def setUp(self):
        self.resolver = RoleResolver()

    def test_anonymous_user_has_no_capabilities(self):
        self.assertEqual(self.resolver.resolve(AnonymousUser()), frozenset())
        self.assertEqual(self.resolver.resolve(None), frozenset())

    def test_plain_user_has_no_capabilities(self):
        user = TestDataFactory.create_user()
        self.assertEqual(self.resolver.resolve(user), frozenset())

    def test_admin_group_gets_everything(self):
        user = TestDataFactory.create_user(groups=[ADMIN_GROUP])
        self.assertEqual(self.resolver.resolve(user), ALL_CAPABILITIES)

    def test_finance_group(self):
        user = TestDataFactory.create_user(groups=[FINANCE_GROUP])
        capabilities = self.resolver.resolve(user)
        self.assertIn(Capability.GENERATE_RECEIPTS, capabilities)
        self.assertIn(Capability.VIEW_REVENUE, capabilities)
        self.assertNotIn(Capability.EDIT_PROJECTS, capabilities)

    def test_restricted_group_cannot_see_revenue(self):
        user = TestDataFactory.create_user(groups=[RESTRICTED_GROUP])
        capabilities = self.resolver.resolve(user)
        self.assertIn(Capability.VIEW_REPORTS, capabilities)
        self.assertIn(Capability.EDIT_PROJECTS, capabilities)
        self.assertNotIn(Capability.VIEW_REVENUE, capabilities)

    def test_groups_are_combined(self):
        user = TestDataFactory.create_user(groups=[FINANCE_GROUP, EDITOR_GROUP])
        capabilities = self.resolver.resolve(user)
        self.assertIn(Capability.GENERATE_RECEIPTS, capabilities)
        self.assertIn(Capability.EDIT_PROJECTS, capabilities)

    def test_superuser_without_group_gets_everything(self):
        user = TestDataFactory.create_user(is_superuser=True, is_staff=True)
        self.assertEqual(self.resolver.resolve(user), ALL_CAPABILITIES)

    def test_group_membership_wins_over_superuser_flag(self):
        user = TestDataFactory.create_user(is_superuser=True, groups=[STAFF_GROUP])
        self.assertNotIn(Capability.GENERATE_RECEIPTS, self.resolver.resolve(user))

    def test_staff_without_group_gets_staff_capabilities(self):
        user = TestDataFactory.create_user(is_staff=True)
        self.assertEqual(self.resolver.resolve(user), frozenset({Capability.VIEW_REPORTS, Capability.VIEW_REVENUE}))

    def test_inactive_user_has_no_capabilities(self):
        user = TestDataFactory.create_user(groups=[ADMIN_GROUP])
        user.is_active = False
        self.assertEqual(self.resolver.resolve(user), frozenset())

    def test_unknown_groups_are_ignored(self):
        user = TestDataFactory.create_user(groups=['Marketing'])
        self.assertEqual(self.resolver.application_groups(user), [])

    def test_custom_mapping_is_injected(self):
        resolver = RoleResolver({'Auditors': frozenset({Capability.VIEW_REPORTS})})
        user = TestDataFactory.create_user(groups=['Auditors'])
        self.assertEqual(resolver.resolve(user), frozenset({Capability.VIEW_REPORTS}))

    def test_role_flags(self):
        user = TestDataFactory.create_user(groups=[RESTRICTED_GROUP])
        flags = self.resolver.role_flags(user)
        self.assertTrue(flags['is_restricted'])
        self.assertTrue(flags['is_editor'])
        self.assertFalse(flags['is_finance'])
        self.assertFalse(flags['is_admin'])

    def test_permission_class_name(self):
        permission = HasCapability(Capability.VIEW_REPORTS)
        self.assertEqual(permission.__name__, 'HasViewReports')
        self.assertEqual(permission.capability, Capability.VIEW_REPORTS)


class AuthTests(TestCase):
    """Test login and current-user endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_login_returns_token_pair(self):
        TestDataFactory.create_user(username='finance', password='s3cret-pass!', groups=[FINANCE_GROUP])
        response = self.client.post('/api/v1/auth/login/', {'username': 'finance', 'password': 's3cret-pass!'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)

    def test_login_with_wrong_password(self):
        TestDataFactory.create_user(username='finance', password='s3cret-pass!')
        response = self.client.post('/api/v1/auth/login/', {'username': 'finance', 'password': 'nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_with_garbage_token(self):
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_lists_capabilities(self):
        user = TestDataFactory.create_user(email='dhanush@example.com', groups=[FINANCE_GROUP])
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['groups'], [FINANCE_GROUP])
        self.assertIn('generate_receipts', response.data['capabilities'])
        self.assertTrue(response.data['is_finance'])
        self.assertEqual(response.data['display_name'], 'dhanush')


class UserSerializerTests(TestCase):
    """Test that user payloads carry resolved capabilities"""

    def test_capabilities_come_from_resolver(self):
        user = TestDataFactory.create_user(email='meena@example.com', groups=[RESTRICTED_GROUP, 'Marketing'])
        data = UserSerializer(user).data
        self.assertEqual(data['groups'], [RESTRICTED_GROUP])
        self.assertEqual(data['capabilities'], ['edit_projects', 'view_reports'])
        self.assertEqual(data['display_name'], 'meena')

    def test_user_list_shows_capabilities(self):
        admin = TestDataFactory.create_user(username='owner', groups=[ADMIN_GROUP])
        client = AuthenticatedAPIClient()
        client.authenticate_user(admin)
        response = client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        owner = [u for u in response.data if u['username'] == 'owner'][0]
        self.assertEqual(len(owner['capabilities']), len(ALL_CAPABILITIES))

    def test_create_user_in_group(self):
        admin = TestDataFactory.create_user(groups=[ADMIN_GROUP])
        client = AuthenticatedAPIClient()
        client.authenticate_user(admin)
        response = client.post('/api/v1/users/', {
            'username': 'accounts1',
            'email': 'accounts1@example.com',
            'password': 'Solar-Panel-2024!',
            'password_confirm': 'Solar-Panel-2024!',
            'group': FINANCE_GROUP,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('generate_receipts', response.data['capabilities'])

    def test_create_user_rejects_unknown_group(self):
        admin = TestDataFactory.create_user(groups=[ADMIN_GROUP])
        client = AuthenticatedAPIClient()
        client.authenticate_user(admin)
        response = client.post('/api/v1/users/', {
            'username': 'intruder',
            'password': 'Solar-Panel-2024!',
            'password_confirm': 'Solar-Panel-2024!',
            'group': 'Superheroes',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('group', response.data)


class AuditLogTests(TestCase):
    """Test audit log helper and endpoints"""

    def test_create_audit_log(self):
        user = TestDataFactory.create_user()
        log = create_audit_log(user=user, action='create', model_name='Project', object_id=1, object_name='Ravi')
        self.assertIsNotNone(log)
        self.assertEqual(log.object_id, '1')
        self.assertEqual(log.user, user)

    def test_create_audit_log_skips_missing_fields(self):
        self.assertIsNone(create_audit_log(action='create', model_name='Project'))
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_audit_logs_require_manage_users(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(TestDataFactory.create_user(groups=[EDITOR_GROUP]))
        response = client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_lists_audit_logs(self):
        admin = TestDataFactory.create_user(groups=[ADMIN_GROUP])
        create_audit_log(user=admin, action='delete', model_name='Project', object_id=7)
        client = AuthenticatedAPIClient()
        client.authenticate_user(admin)
        response = client.get('/api/v1/audit-logs/?action=delete')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['object_id'], '7')


class CreateUserGroupsCommandTests(TestCase):

    def test_creates_all_groups(self):
        call_command('create_user_groups', stdout=StringIO())
        names = set(Group.objects.values_list('name', flat=True))
        self.assertEqual(names, {ADMIN_GROUP, FINANCE_GROUP, EDITOR_GROUP, RESTRICTED_GROUP, STAFF_GROUP})

    def test_is_idempotent(self):
        call_command('create_user_groups', stdout=StringIO())
        out = StringIO()
        call_command('create_user_groups', stdout=out)
        self.assertIn('0 groups created, 5 groups already existed', out.getvalue())
