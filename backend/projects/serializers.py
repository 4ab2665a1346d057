from rest_framework import serializers
from .models import Project
from .stages import PROJECT_STAGES, group_for_stage


class ProjectSerializer(serializers.ModelSerializer):
    created_by_username = serializers.CharField(source='created_by.username', read_only=True)
    stage_group = serializers.SerializerMethodField()

    class Meta:
        model = Project
        fields = [
            'id', 'customer_name', 'customer_address', 'customer_phone', 'status',
            'current_stage', 'stage_group', 'proposal_amount', 'kwh', 'start_date',
            'created_by', 'created_by_username', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_by', 'created_at', 'updated_at']

    def get_stage_group(self, obj):
        group = group_for_stage(obj.current_stage)
        return group.name if group else None

    def validate_current_stage(self, value):
        # Only catalog stages can be set through the API; legacy labels
        # already stored are left alone on partial updates.
        if value not in PROJECT_STAGES:
            raise serializers.ValidationError(f"'{value}' is not a known project stage.")
        return value

    def validate_status(self, value):
        if value == 'deleted':
            raise serializers.ValidationError("Use DELETE to remove a project.")
        return value
