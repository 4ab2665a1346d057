"""
Test suite for Reports module
Tests: aggregation engine, chart helpers, report summary endpoint
"""
import datetime
from decimal import Decimal
from unittest.mock import patch
from django.test import SimpleTestCase, TestCase
from rest_framework import status
from backend.core.roles import ADMIN_GROUP, FINANCE_GROUP, RESTRICTED_GROUP
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.projects.models import Project
from backend.projects.stages import PROJECT_STAGES
from backend.reports.aggregation import (
    AggregateReport, aggregate, chart_scale, effective_date, parse_record_date,
    stage_group_totals, year_options,
)
from backend.reports.exceptions import UpstreamFetchError


def record(**kwargs):
    data = {
        'customer_name': 'Customer',
        'status': 'active',
        'current_stage': 'Advance Payment Done',
        'proposal_amount': '100000',
        'kwh': '5',
        'start_date': None,
        'created_at': '2024-01-10T09:30:00+05:30',
    }
    data.update(kwargs)
    return data


class AggregateTests(SimpleTestCase):
    """Test the aggregation engine on in-memory records"""

    def setUp(self):
        self.records = [
            record(customer_name='Anil', kwh='5', proposal_amount='250000', start_date='2024-03-01'),
            record(customer_name='Sunita', status='completed', kwh='10', proposal_amount='400000',
                   start_date='2023-11-20', current_stage='Final Payment Done'),
            record(customer_name='Anil', status='on_hold', kwh='3.5', proposal_amount='120000',
                   start_date=None, created_at='2024-07-04T10:00:00Z', current_stage='Legacy Stage'),
            record(customer_name='Deleted', status='deleted', kwh='99', proposal_amount='999999',
                   start_date='2024-03-05'),
        ]

    def test_basic_scenario(self):
        records = [
            {'status': 'active', 'kwh': 5, 'start_date': '2024-03-01'},
            {'status': 'completed', 'kwh': 10, 'start_date': '2024-03-15'},
        ]
        report = aggregate(records, 2024)
        self.assertEqual(report.monthly_kwh['March'], Decimal('15'))
        self.assertEqual(report.active_projects, 1)
        self.assertEqual(report.completed_projects, 1)
        self.assertEqual(report.total_kwh, Decimal('15'))

    def test_empty_input_gives_zero_report(self):
        report = aggregate([], 2024)
        self.assertEqual(report.total_customers, 0)
        self.assertEqual(report.total_revenue, Decimal('0'))
        self.assertEqual(report.total_kwh, Decimal('0'))
        self.assertEqual(set(report.stage_counts), set(PROJECT_STAGES))
        self.assertTrue(all(count == 0 for count in report.stage_counts.values()))
        self.assertEqual(list(report.monthly_kwh)[0], 'January')
        self.assertEqual(len(report.monthly_kwh), 12)

    def test_none_input_is_rejected(self):
        with self.assertRaises(TypeError):
            aggregate(None, 2024)

    def test_deleted_records_are_ignored(self):
        report = aggregate(self.records, 2024)
        self.assertEqual(report.total_kwh, Decimal('18.5'))
        self.assertEqual(report.total_revenue, Decimal('770000'))
        self.assertEqual(report.monthly_kwh['March'], Decimal('5'))

    def test_customers_are_distinct_names(self):
        report = aggregate(self.records + [record(customer_name=None), record(customer_name='')], 2024)
        self.assertEqual(report.total_customers, 2)

    def test_status_counts(self):
        report = aggregate(self.records, 2024)
        self.assertEqual(report.active_projects, 1)
        self.assertEqual(report.completed_projects, 1)

    def test_stage_counts_sum_over_known_stages(self):
        report = aggregate(self.records, 2024)
        # Three live records, one with a stage outside the catalog
        self.assertEqual(sum(report.stage_counts.values()), 2)
        self.assertNotIn('Legacy Stage', report.stage_counts)

        known = [r for r in self.records if r['current_stage'] != 'Legacy Stage']
        report = aggregate(known, 2024)
        live = [r for r in known if r['status'] != 'deleted']
        self.assertEqual(sum(report.stage_counts.values()), len(live))

    def test_stage_match_is_case_sensitive(self):
        report = aggregate([record(current_stage='final payment done')], 2024)
        self.assertEqual(report.stage_counts['Final Payment Done'], 0)

    def test_monthly_sum_matches_year_scoped_kwh(self):
        for year in (2023, 2024, 2025):
            report = aggregate(self.records, year)
            expected = sum(
                (Decimal(r['kwh']) for r in self.records
                 if r['status'] != 'deleted' and effective_date(r).year == year),
                Decimal('0')
            )
            self.assertEqual(sum(report.monthly_kwh.values(), Decimal('0')), expected)

    def test_created_at_used_without_start_date(self):
        report = aggregate(self.records, 2024)
        self.assertEqual(report.monthly_kwh['July'], Decimal('3.5'))

    def test_year_does_not_change_unscoped_totals(self):
        a = aggregate(self.records, 2023)
        b = aggregate(self.records, 2024)
        self.assertEqual(a.total_revenue, b.total_revenue)
        self.assertEqual(a.total_kwh, b.total_kwh)
        self.assertEqual(a.total_customers, b.total_customers)
        self.assertEqual(a.stage_counts, b.stage_counts)
        self.assertNotEqual(a.monthly_kwh, b.monthly_kwh)

    def test_idempotent(self):
        self.assertEqual(aggregate(self.records, 2024), aggregate(self.records, 2024))

    def test_order_does_not_matter(self):
        self.assertEqual(aggregate(self.records, 2024), aggregate(list(reversed(self.records)), 2024))

    def test_input_is_not_modified(self):
        before = [dict(r) for r in self.records]
        aggregate(self.records, 2024)
        self.assertEqual(self.records, before)

    def test_generator_input(self):
        report = aggregate((r for r in self.records), 2024)
        self.assertEqual(report.total_kwh, Decimal('18.5'))

    def test_unparseable_date_counts_in_totals_only(self):
        report = aggregate([record(kwh='4', start_date='not a date', created_at='garbage')], 2024)
        self.assertEqual(report.total_kwh, Decimal('4'))
        self.assertEqual(sum(report.monthly_kwh.values(), Decimal('0')), Decimal('0'))

    def test_invalid_start_date_falls_back_to_created_at(self):
        report = aggregate([record(kwh='4', start_date='2024-02-30', created_at='2024-05-01')], 2024)
        self.assertEqual(report.monthly_kwh['May'], Decimal('4'))

    def test_aware_created_at_uses_local_time(self):
        # 20:00 UTC on 31 Dec is 01:30 on 1 Jan in Asia/Kolkata
        late = datetime.datetime(2024, 12, 31, 20, 0, tzinfo=datetime.timezone.utc)
        rows = [record(kwh='7', start_date=None, created_at=late)]
        self.assertEqual(sum(aggregate(rows, 2024).monthly_kwh.values(), Decimal('0')), Decimal('0'))
        self.assertEqual(aggregate(rows, 2025).monthly_kwh['January'], Decimal('7'))

        rows = [record(kwh='7', start_date=None, created_at='2024-12-31T20:00:00Z')]
        self.assertEqual(aggregate(rows, 2025).monthly_kwh['January'], Decimal('7'))

    def test_naive_values_are_read_as_given(self):
        rows = [record(kwh='2', start_date=datetime.date(2024, 12, 31))]
        self.assertEqual(aggregate(rows, 2024).monthly_kwh['December'], Decimal('2'))
        self.assertEqual(parse_record_date('2024-12-31T23:30:00').day, 31)

    def test_missing_quantities_count_as_zero(self):
        report = aggregate([record(kwh=None, proposal_amount='abc')], 2024)
        self.assertEqual(report.total_kwh, Decimal('0'))
        self.assertEqual(report.total_revenue, Decimal('0'))

    def test_accepts_objects(self):
        class Row:
            customer_name = 'Ravi'
            status = 'active'
            current_stage = 'Final Payment Done'
            proposal_amount = Decimal('150000.00')
            kwh = Decimal('3.00')
            start_date = datetime.date(2024, 8, 1)
            created_at = None

        report = aggregate([Row()], 2024)
        self.assertEqual(report.monthly_kwh['August'], Decimal('3.00'))
        self.assertEqual(report.stage_counts['Final Payment Done'], 1)

    def test_as_dict(self):
        data = aggregate(self.records, 2024).as_dict()
        self.assertEqual(data['year'], 2024)
        self.assertEqual(data['total_kwh'], 18.5)
        self.assertIsInstance(data['monthly_kwh']['March'], float)

    def test_report_is_frozen(self):
        report = AggregateReport(year=2024)
        with self.assertRaises(AttributeError):
            report.year = 2025


class HelperTests(SimpleTestCase):

    def test_parse_record_date(self):
        self.assertEqual(parse_record_date('2024-03-01'), datetime.date(2024, 3, 1))
        self.assertEqual(parse_record_date('2024-03-01T10:00:00').month, 3)
        self.assertIsNone(parse_record_date(''))
        self.assertIsNone(parse_record_date('01/03/2024'))
        self.assertIsNone(parse_record_date(20240301))

    def test_chart_scale(self):
        self.assertEqual(chart_scale([]), 1)
        self.assertEqual(chart_scale([0, 0]), 1)
        self.assertEqual(chart_scale([3, 12, 7]), 12)

    def test_stage_group_totals(self):
        counts = {stage: 1 for stage in PROJECT_STAGES}
        totals = stage_group_totals(counts)
        self.assertEqual(totals['Finalization'], 3)
        self.assertEqual(totals['Installation'], 1)
        self.assertEqual(sum(totals.values()), len(PROJECT_STAGES))

    def test_year_options(self):
        self.assertEqual(year_options(2026), [2026, 2025, 2024, 2023, 2022])


class ReportSummaryAPITests(TestCase):
    """Test the report summary endpoint"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        TestDataFactory.create_project(customer_name='Anil', kwh=Decimal('5.00'),
                                       proposal_amount=Decimal('250000.00'),
                                       start_date=datetime.date(2024, 3, 1))
        TestDataFactory.create_project(customer_name='Sunita', kwh=Decimal('10.00'), status='completed',
                                       proposal_amount=Decimal('400000.00'),
                                       current_stage='Final Payment Done',
                                       start_date=datetime.date(2024, 3, 15))
        TestDataFactory.create_project(customer_name='Gone', kwh=Decimal('50.00'), status='deleted',
                                       start_date=datetime.date(2024, 3, 20))

    def test_summary_for_year(self):
        self.client.authenticate_user(TestDataFactory.create_user(groups=[FINANCE_GROUP]))
        response = self.client.get('/api/v1/reports/summary/?year=2024')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['year'], 2024)
        stats = response.data['stats']
        self.assertEqual(stats['total_customers'], 2)
        self.assertEqual(stats['active_projects'], 1)
        self.assertEqual(stats['completed_projects'], 1)
        self.assertEqual(stats['total_kwh'], 15.0)
        self.assertEqual(stats['total_revenue'], 650000.0)

        march = [m for m in response.data['monthly_kwh'] if m['month'] == 'March'][0]
        self.assertEqual(march['kwh'], 15.0)
        self.assertEqual(march['short'], 'Mar')
        self.assertEqual([m['short'] for m in response.data['monthly_kwh']][:2], ['Jan', 'Feb'])
        self.assertEqual(response.data['scales']['max_monthly_kwh'], 15.0)
        self.assertEqual(response.data['scales']['max_stage_count'], 1)

        finalization = [g for g in response.data['stage_groups'] if g['name'] == 'Finalization'][0]
        self.assertEqual(finalization['total'], 1)
        self.assertEqual(finalization['color'], 'red')

    def test_revenue_hidden_without_capability(self):
        self.client.authenticate_user(TestDataFactory.create_user(groups=[RESTRICTED_GROUP]))
        response = self.client.get('/api/v1/reports/summary/?year=2024')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertNotIn('total_revenue', response.data['stats'])
        self.assertEqual(response.data['stats']['total_kwh'], 15.0)

    def test_other_year_keeps_totals(self):
        self.client.authenticate_user(TestDataFactory.create_user(groups=[ADMIN_GROUP]))
        response = self.client.get('/api/v1/reports/summary/?year=2023')
        self.assertEqual(response.data['stats']['total_kwh'], 15.0)
        self.assertTrue(all(m['kwh'] == 0 for m in response.data['monthly_kwh']))
        self.assertEqual(response.data['scales']['max_monthly_kwh'], 1.0)

    def test_defaults_to_current_year(self):
        self.client.authenticate_user(TestDataFactory.create_user(groups=[ADMIN_GROUP]))
        response = self.client.get('/api/v1/reports/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['year'], response.data['year_options'][0])

    def test_invalid_year(self):
        self.client.authenticate_user(TestDataFactory.create_user(groups=[ADMIN_GROUP]))
        response = self.client.get('/api/v1/reports/summary/?year=twenty')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/reports/summary/?year=12')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_requires_view_reports(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/reports/summary/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_requires_authentication(self):
        response = self.client.get('/api/v1/reports/summary/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_report_and_project_list_agree_on_year(self):
        admin = TestDataFactory.create_user(groups=[ADMIN_GROUP])
        self.client.authenticate_user(admin)
        project = TestDataFactory.create_project(customer_name='New Year', kwh=Decimal('7.00'))
        late = datetime.datetime(2024, 12, 31, 20, 0, tzinfo=datetime.timezone.utc)
        Project.objects.filter(pk=project.pk).update(created_at=late)

        listed = self.client.get('/api/v1/projects/?year=2025')
        self.assertEqual([p['customer_name'] for p in listed.data], ['New Year'])

        report = self.client.get('/api/v1/reports/summary/?year=2025')
        january = report.data['monthly_kwh'][0]
        self.assertEqual(january['month'], 'January')
        self.assertEqual(january['kwh'], 7.0)

        report = self.client.get('/api/v1/reports/summary/?year=2024')
        december = report.data['monthly_kwh'][11]
        self.assertEqual(december['kwh'], 0.0)

    @patch('backend.reports.views.fetch_project_records')
    def test_fetch_failure_returns_503(self, mock_fetch):
        mock_fetch.side_effect = UpstreamFetchError('database is locked')
        self.client.authenticate_user(TestDataFactory.create_user(groups=[ADMIN_GROUP]))
        response = self.client.get('/api/v1/reports/summary/?year=2024')
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data['error'], 'Failed to fetch reports data')
