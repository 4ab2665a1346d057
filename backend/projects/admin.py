from django.contrib import admin
from .models import Project


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ['customer_name', 'status', 'current_stage', 'proposal_amount', 'kwh', 'start_date', 'created_at']
    list_filter = ['status', 'current_stage', 'created_at']
    search_fields = ['customer_name', 'customer_phone', 'customer_address']
    ordering = ['-created_at']
    readonly_fields = ['created_by', 'created_at', 'updated_at']
