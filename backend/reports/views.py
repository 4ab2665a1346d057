import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import DatabaseError
from django.utils import timezone

from backend.core.roles import Capability, HasCapability, role_resolver
from backend.projects.models import Project
from backend.projects.stages import STAGE_GROUPS, Month
from .aggregation import aggregate, chart_scale, stage_group_totals, year_options
from .exceptions import UpstreamFetchError

logger = logging.getLogger('backend.reports')

RECORD_FIELDS = (
    'id', 'status', 'current_stage', 'proposal_amount', 'created_at',
    'start_date', 'kwh', 'customer_name',
)


def fetch_project_records():
    """All non-deleted projects as plain rows"""
    try:
        return list(Project.objects.exclude(status='deleted').values(*RECORD_FIELDS))
    except DatabaseError as e:
        raise UpstreamFetchError(str(e)) from e


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasCapability(Capability.VIEW_REPORTS)])
def report_summary(request):
    """Reports & analytics summary for one year"""
    current_year = timezone.localdate().year
    year_param = request.query_params.get('year', None)
    if year_param in (None, ''):
        year = current_year
    else:
        try:
            year = int(year_param)
        except ValueError:
            return Response({'error': 'year must be an integer, e.g. 2024'}, status=status.HTTP_400_BAD_REQUEST)
        if year < 1900 or year > 9999:
            return Response({'error': 'year is out of range'}, status=status.HTTP_400_BAD_REQUEST)

    logger.info(f"User {request.user.username} requested report summary (year={year})")

    try:
        records = fetch_project_records()
    except UpstreamFetchError as e:
        logger.error(f"Error fetching projects for report: {e}")
        return Response(
            {'error': 'Failed to fetch reports data', 'detail': str(e)},
            status=status.HTTP_503_SERVICE_UNAVAILABLE
        )

    report = aggregate(records, year)
    data = report.as_dict()

    stats = {
        'total_customers': data['total_customers'],
        'active_projects': data['active_projects'],
        'completed_projects': data['completed_projects'],
        'total_kwh': data['total_kwh'],
    }
    if role_resolver.has(request.user, Capability.VIEW_REVENUE):
        stats['total_revenue'] = data['total_revenue']

    stage_counts = data['stage_counts']
    group_totals = stage_group_totals(stage_counts)
    monthly = [
        {'month': month.label, 'short': month.short_label, 'kwh': data['monthly_kwh'][month.label]}
        for month in Month
    ]

    return Response({
        'year': year,
        'year_options': year_options(current_year),
        'stats': stats,
        'stage_counts': stage_counts,
        'stage_groups': [
            {
                'name': group.name,
                'color': group.color,
                'total': group_totals[group.name],
                'stages': [
                    {'stage': stage.value, 'count': stage_counts[stage.value]}
                    for stage in group.stages
                ],
            }
            for group in STAGE_GROUPS
        ],
        'monthly_kwh': monthly,
        'scales': {
            'max_monthly_kwh': float(chart_scale(report.monthly_kwh.values())),
            'max_stage_count': chart_scale(stage_counts.values()),
        },
    })
