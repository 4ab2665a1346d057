"""
Static catalogs for project lifecycle stages and calendar months.

Stage labels are stored verbatim on projects and matched exactly
(case-sensitive) by the reports, so the labels below must not be reworded.
"""
import enum
from dataclasses import dataclass
from typing import Optional, Tuple

from django.core.exceptions import ImproperlyConfigured
from django.db import models


class Stage(models.TextChoices):
    ADVANCE_PAYMENT_DONE = 'Advance Payment Done'
    ADVANCE_PAYMENT_APPROVALS = 'Advance Payment -- Approvals / First Payment'
    APPROVALS_LOAN_APPLICATIONS = 'Approvals -- Loan Applications'
    LOAN_STARTED = 'Loan Started -- Loan Process'
    LOAN_APPROVED = 'Loan Approved / First Payment Collected -- Material Order'
    MATERIALS_ORDERED = 'Materials Ordered -- Materials Deliver'
    MATERIALS_DELIVERED = 'Materials Delivered -- Installation'
    INSTALLATION_DONE = 'Installation Done / Second Payment Done -- Net meter Application'
    NET_METER_APPLICATION = 'Net Meter Application -- Net Meter Installation'
    NET_METER_INSTALLED = 'Net Meter Installed -- Inspection / Final Payment'
    INSPECTION_APPROVED = 'Approved Inspection -- Subsidy in Progress'
    SUBSIDY_DISBURSED = 'Subsidy Disbursed -- Final payment'
    FINAL_PAYMENT_DONE = 'Final Payment Done'


# Ordered catalog of stage labels
PROJECT_STAGES: Tuple[str, ...] = tuple(stage.value for stage in Stage)


@dataclass(frozen=True)
class StageGroup:
    name: str
    stages: Tuple[Stage, ...]
    color: str


STAGE_GROUPS: Tuple[StageGroup, ...] = (
    StageGroup('Advance Payment', (
        Stage.ADVANCE_PAYMENT_DONE,
        Stage.ADVANCE_PAYMENT_APPROVALS,
    ), 'blue'),
    StageGroup('Approvals & Loan', (
        Stage.APPROVALS_LOAN_APPLICATIONS,
        Stage.LOAN_STARTED,
        Stage.LOAN_APPROVED,
    ), 'purple'),
    StageGroup('Materials', (
        Stage.MATERIALS_ORDERED,
        Stage.MATERIALS_DELIVERED,
    ), 'orange'),
    StageGroup('Installation', (
        Stage.INSTALLATION_DONE,
    ), 'teal'),
    StageGroup('Net Metering', (
        Stage.NET_METER_APPLICATION,
        Stage.NET_METER_INSTALLED,
    ), 'green'),
    StageGroup('Finalization', (
        Stage.INSPECTION_APPROVED,
        Stage.SUBSIDY_DISBURSED,
        Stage.FINAL_PAYMENT_DONE,
    ), 'red'),
)


def validate_stage_groups(groups=STAGE_GROUPS, catalog=PROJECT_STAGES):
    """Every catalog stage must belong to exactly one group."""
    seen = {}
    for group in groups:
        for stage in group.stages:
            label = str(stage.value if isinstance(stage, Stage) else stage)
            if label in seen:
                raise ImproperlyConfigured(
                    f"Stage '{label}' is in both '{seen[label]}' and '{group.name}'"
                )
            seen[label] = group.name

    missing = [label for label in catalog if label not in seen]
    unknown = [label for label in seen if label not in catalog]
    if missing or unknown:
        raise ImproperlyConfigured(
            f"Stage groups do not cover the stage catalog (missing={missing}, unknown={unknown})"
        )


def group_for_stage(label) -> Optional[StageGroup]:
    for group in STAGE_GROUPS:
        if label in group.stages:
            return group
    return None


class Month(enum.IntEnum):
    JANUARY = 1
    FEBRUARY = 2
    MARCH = 3
    APRIL = 4
    MAY = 5
    JUNE = 6
    JULY = 7
    AUGUST = 8
    SEPTEMBER = 9
    OCTOBER = 10
    NOVEMBER = 11
    DECEMBER = 12

    @property
    def label(self) -> str:
        return self.name.title()

    @property
    def short_label(self) -> str:
        return self.label[:3]
