from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal
from backend.core.models import User
from .stages import Stage


class Project(models.Model):
    """Solar installation projects"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('completed', 'Completed'),
        ('on_hold', 'On Hold'),
        ('deleted', 'Deleted'),
    ]

    customer_name = models.CharField(max_length=200, blank=True, null=True)
    customer_address = models.TextField(blank=True)
    customer_phone = models.CharField(max_length=20, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    # Not restricted to Stage choices: legacy labels are kept as entered and
    # simply fall outside the stage counts.
    current_stage = models.CharField(max_length=255, default=Stage.ADVANCE_PAYMENT_DONE.value)
    proposal_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    kwh = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Installed capacity"
    )
    start_date = models.DateField(null=True, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='projects')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.customer_name or f"Project-{self.pk}"

    @property
    def effective_date(self):
        return self.start_date or self.created_at

    class Meta:
        db_table = 'projects'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='projects_status_idx'),
            models.Index(fields=['current_stage'], name='projects_stage_idx'),
        ]
