"""
Test suite for Projects module
Tests: stage catalog, CRUD operations, soft delete, permissions, filters
"""
import datetime
from decimal import Decimal
from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase, TestCase
from rest_framework import status
from backend.core.models import AuditLog
from backend.core.roles import EDITOR_GROUP, FINANCE_GROUP, RESTRICTED_GROUP
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.projects.models import Project
from backend.projects.stages import (
    Stage, StageGroup, PROJECT_STAGES, STAGE_GROUPS, Month,
    validate_stage_groups, group_for_stage,
)


class StageCatalogTests(SimpleTestCase):
    """Test the static stage catalog and its groups"""

    def test_catalog_has_thirteen_stages(self):
        self.assertEqual(len(PROJECT_STAGES), 13)
        self.assertEqual(PROJECT_STAGES[0], 'Advance Payment Done')
        self.assertEqual(PROJECT_STAGES[-1], 'Final Payment Done')

    def test_every_stage_in_exactly_one_group(self):
        grouped = [stage.value for group in STAGE_GROUPS for stage in group.stages]
        self.assertEqual(sorted(grouped), sorted(PROJECT_STAGES))
        validate_stage_groups()

    def test_duplicate_stage_is_rejected(self):
        groups = STAGE_GROUPS + (StageGroup('Extra', (Stage.FINAL_PAYMENT_DONE,), 'gray'),)
        with self.assertRaises(ImproperlyConfigured):
            validate_stage_groups(groups)

    def test_missing_stage_is_rejected(self):
        with self.assertRaises(ImproperlyConfigured):
            validate_stage_groups(STAGE_GROUPS[:-1])

    def test_group_for_stage(self):
        self.assertEqual(group_for_stage('Final Payment Done').name, 'Finalization')
        self.assertEqual(group_for_stage(Stage.LOAN_STARTED).color, 'purple')
        self.assertIsNone(group_for_stage('Legacy Stage'))
        self.assertIsNone(group_for_stage('final payment done'))

    def test_month_labels(self):
        self.assertEqual(Month(1).label, 'January')
        self.assertEqual(Month.SEPTEMBER.short_label, 'Sep')
        self.assertEqual(len(Month), 12)


class ProjectModelTests(TestCase):

    def test_effective_date_prefers_start_date(self):
        project = TestDataFactory.create_project(start_date=datetime.date(2024, 3, 15))
        self.assertEqual(project.effective_date, datetime.date(2024, 3, 15))

    def test_effective_date_falls_back_to_created_at(self):
        project = TestDataFactory.create_project()
        self.assertEqual(project.effective_date, project.created_at)

    def test_str_without_name(self):
        project = Project.objects.create(customer_name=None)
        self.assertEqual(str(project), f'Project-{project.pk}')


class ProjectAPITests(TestCase):
    """Test project endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.editor = TestDataFactory.create_user(groups=[EDITOR_GROUP])
        self.client.authenticate_user(self.editor)

    def test_create_project(self):
        response = self.client.post('/api/v1/projects/', {
            'customer_name': 'Ravi Kumar',
            'customer_address': 'Plot 12, Madhapur, Hyderabad',
            'current_stage': 'Materials Ordered -- Materials Deliver',
            'proposal_amount': '250000.00',
            'kwh': '5.50',
            'start_date': '2024-02-10',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['stage_group'], 'Materials')
        self.assertEqual(response.data['created_by_username'], self.editor.username)
        self.assertTrue(AuditLog.objects.filter(action='create', model_name='Project').exists())

    def test_create_with_unknown_stage(self):
        response = self.client.post('/api/v1/projects/', {
            'customer_name': 'Ravi Kumar',
            'current_stage': 'Not A Stage',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('current_stage', response.data)

    def test_create_with_negative_kwh(self):
        response = self.client.post('/api/v1/projects/', {
            'customer_name': 'Ravi Kumar',
            'kwh': '-1.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_set_deleted_status(self):
        project = TestDataFactory.create_project()
        response = self.client.patch(f'/api/v1/projects/{project.id}/', {'status': 'deleted'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_stage_change_is_audited(self):
        project = TestDataFactory.create_project()
        response = self.client.patch(
            f'/api/v1/projects/{project.id}/',
            {'current_stage': 'Final Payment Done'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get(action='stage_change')
        self.assertEqual(log.changes['current_stage']['new'], 'Final Payment Done')

    def test_plain_update_is_audited_as_update(self):
        project = TestDataFactory.create_project()
        self.client.patch(f'/api/v1/projects/{project.id}/', {'kwh': '7.25'}, format='json')
        self.assertTrue(AuditLog.objects.filter(action='update', object_id=str(project.id)).exists())
        project.refresh_from_db()
        self.assertEqual(project.kwh, Decimal('7.25'))

    def test_delete_is_soft(self):
        project = TestDataFactory.create_project()
        response = self.client.delete(f'/api/v1/projects/{project.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        project.refresh_from_db()
        self.assertEqual(project.status, 'deleted')

        response = self.client.get(f'/api/v1/projects/{project.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.get('/api/v1/projects/')
        self.assertEqual(response.data, [])

    def test_list_filters(self):
        TestDataFactory.create_project(customer_name='Anil', start_date=datetime.date(2023, 5, 1))
        TestDataFactory.create_project(customer_name='Sunita', start_date=datetime.date(2024, 5, 1),
                                       current_stage='Final Payment Done', status='completed')

        response = self.client.get('/api/v1/projects/?year=2024')
        self.assertEqual([p['customer_name'] for p in response.data], ['Sunita'])

        response = self.client.get('/api/v1/projects/', {'stage': 'Final Payment Done'})
        self.assertEqual([p['customer_name'] for p in response.data], ['Sunita'])

        response = self.client.get('/api/v1/projects/?status=active')
        self.assertEqual([p['customer_name'] for p in response.data], ['Anil'])

        response = self.client.get('/api/v1/projects/?search=suni')
        self.assertEqual(len(response.data), 1)

    def test_year_filter_uses_created_at_without_start_date(self):
        TestDataFactory.create_project(customer_name='Undated')
        this_year = datetime.date.today().year
        response = self.client.get(f'/api/v1/projects/?year={this_year}')
        self.assertEqual([p['customer_name'] for p in response.data], ['Undated'])

    def test_invalid_year_filter(self):
        response = self.client.get('/api/v1/projects/?year=abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_restricted_user_can_edit(self):
        self.client.authenticate_user(TestDataFactory.create_user(groups=[RESTRICTED_GROUP]))
        project = TestDataFactory.create_project()
        response = self.client.patch(f'/api/v1/projects/{project.id}/', {'customer_phone': '9876543210'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_finance_user_is_read_only(self):
        self.client.authenticate_user(TestDataFactory.create_user(groups=[FINANCE_GROUP]))
        project = TestDataFactory.create_project()

        response = self.client.get(f'/api/v1/projects/{project.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.delete(f'/api/v1/projects/{project.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.post('/api/v1/projects/', {'customer_name': 'X'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unauthenticated_access(self):
        self.client.logout()
        response = self.client.get('/api/v1/projects/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_stage_catalog_endpoint(self):
        response = self.client.get('/api/v1/projects/stages/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['stages'], list(PROJECT_STAGES))
        self.assertEqual(len(response.data['groups']), 6)
        self.assertEqual(response.data['groups'][0]['color'], 'blue')
