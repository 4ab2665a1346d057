"""
Project statistics for the reports screen.

``aggregate`` turns the flat list of project records into the report shown on
the Reports & Analytics page: global counters, per-stage counts and the
monthly capacity series for one year. It is a pure function of its input;
nothing is cached and records are never modified.

Records can be dicts (``QuerySet.values()`` rows, API payloads) or objects
exposing the same attribute names.
"""
import datetime
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, Optional

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from backend.projects.stages import PROJECT_STAGES, STAGE_GROUPS, Month

logger = logging.getLogger('backend.reports')

DELETED_STATUS = 'deleted'
ACTIVE_STATUS = 'active'
COMPLETED_STATUS = 'completed'

ZERO = Decimal('0')


@dataclass(frozen=True)
class AggregateReport:
    year: int
    total_customers: int = 0
    active_projects: int = 0
    completed_projects: int = 0
    total_revenue: Decimal = ZERO
    total_kwh: Decimal = ZERO
    stage_counts: Dict[str, int] = field(default_factory=dict)
    monthly_kwh: Dict[str, Decimal] = field(default_factory=dict)

    def as_dict(self):
        return {
            'year': self.year,
            'total_customers': self.total_customers,
            'active_projects': self.active_projects,
            'completed_projects': self.completed_projects,
            'total_revenue': float(self.total_revenue),
            'total_kwh': float(self.total_kwh),
            'stage_counts': dict(self.stage_counts),
            'monthly_kwh': {month: float(kwh) for month, kwh in self.monthly_kwh.items()},
        }


def _field(record, name):
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _to_decimal(value) -> Decimal:
    """Missing or unreadable quantities count as zero."""
    if value is None or value == '':
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        logger.debug(f"Ignoring non-numeric quantity {value!r}")
        return ZERO


def parse_record_date(value) -> Optional[datetime.date]:
    """
    Parse a record date.

    Accepts ``date``/``datetime`` objects and ISO-8601 strings (date or
    date-time). Aware date-times are converted to the local time zone, so
    year and month match the ORM's __year/__month lookups. Returns None for
    empty or unparseable values.
    """
    if value is None or value == '':
        return None
    if isinstance(value, str):
        try:
            value = parse_date(value) or parse_datetime(value)
        except ValueError:
            # Well-formed but invalid, e.g. 2024-02-30
            return None
    if isinstance(value, datetime.datetime):
        return timezone.localtime(value) if timezone.is_aware(value) else value
    if isinstance(value, datetime.date):
        return value
    return None


def effective_date(record) -> Optional[datetime.date]:
    """The record's start date when set and parseable, else its creation date."""
    start = parse_record_date(_field(record, 'start_date'))
    if start is not None:
        return start
    return parse_record_date(_field(record, 'created_at'))


def aggregate(records: Iterable, year: int) -> AggregateReport:
    """
    Build the report for ``year`` from ``records``.

    Deleted records are dropped before anything is counted. Customer,
    status, revenue, capacity and stage figures cover every remaining
    record; only ``monthly_kwh`` is restricted to records whose effective
    date falls in ``year``. Records with an unparseable effective date still
    count toward the unscoped figures.
    """
    if records is None:
        raise TypeError('aggregate() needs a sequence of records, got None')

    live = [r for r in records if _field(r, 'status') != DELETED_STATUS]

    customers = set()
    active = completed = 0
    total_revenue = ZERO
    total_kwh = ZERO
    stage_counts = {stage: 0 for stage in PROJECT_STAGES}
    monthly_kwh = {month.label: ZERO for month in Month}

    for record in live:
        name = _field(record, 'customer_name')
        if name:
            customers.add(name)

        status = _field(record, 'status')
        if status == ACTIVE_STATUS:
            active += 1
        elif status == COMPLETED_STATUS:
            completed += 1

        kwh = _to_decimal(_field(record, 'kwh'))
        total_revenue += _to_decimal(_field(record, 'proposal_amount'))
        total_kwh += kwh

        stage = _field(record, 'current_stage')
        if stage in stage_counts:
            stage_counts[stage] += 1

        when = effective_date(record)
        if when is not None and when.year == year:
            monthly_kwh[Month(when.month).label] += kwh

    return AggregateReport(
        year=year,
        total_customers=len(customers),
        active_projects=active,
        completed_projects=completed,
        total_revenue=total_revenue,
        total_kwh=total_kwh,
        stage_counts=stage_counts,
        monthly_kwh=monthly_kwh,
    )


def chart_scale(values) -> float:
    """Largest value of a series, at least 1, for scaling bar charts."""
    return max([1, *values])


def stage_group_totals(stage_counts) -> Dict[str, int]:
    """Sum stage counts per display group, in group order."""
    return {
        group.name: sum(stage_counts.get(stage.value, 0) for stage in group.stages)
        for group in STAGE_GROUPS
    }


def year_options(current_year: int, span: int = 5):
    """Years offered in the report year picker: the current one and the ones before it."""
    return [current_year - offset for offset in range(span)]
