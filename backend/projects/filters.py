import django_filters
from django.db.models import Q
from .models import Project


class ProjectFilter(django_filters.FilterSet):
    """Filters for the project list"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.CharFilter(field_name='status', lookup_expr='exact')
    stage = django_filters.CharFilter(field_name='current_stage', lookup_expr='exact')
    year = django_filters.NumberFilter(method='filter_year', label='Effective year')

    class Meta:
        model = Project
        fields = ['search', 'status', 'stage', 'year']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(customer_name__icontains=value) |
            Q(customer_phone__icontains=value) |
            Q(customer_address__icontains=value)
        )

    def filter_year(self, queryset, name, value):
        """Projects whose start date, or creation date when unset, falls in ``value``"""
        if value is None:
            return queryset
        year = int(value)
        return queryset.filter(
            Q(start_date__year=year) |
            Q(start_date__isnull=True, created_at__year=year)
        )
