import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404

from backend.core.roles import Capability, SafeOrCapability
from backend.core.utils import create_audit_log
from .filters import ProjectFilter
from .models import Project
from .serializers import ProjectSerializer
from .stages import STAGE_GROUPS, PROJECT_STAGES

logger = logging.getLogger('backend.projects')

ProjectWritePermission = SafeOrCapability(Capability.EDIT_PROJECTS)


def _audit_changes(before, after):
    return {
        field: {'old': str(before.get(field)), 'new': str(after.get(field))}
        for field in after
        if before.get(field) != after.get(field)
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, ProjectWritePermission])
def project_list_create(request):
    """List non-deleted projects or create a new project"""
    if request.method == 'GET':
        queryset = Project.objects.exclude(status='deleted').select_related('created_by')
        filterset = ProjectFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer = ProjectSerializer(filterset.qs, many=True)
        return Response(serializer.data)

    serializer = ProjectSerializer(data=request.data)
    if serializer.is_valid():
        project = serializer.save(created_by=request.user)
        logger.info(f"User {request.user.username} created project {project.id} ({project.customer_name})")
        create_audit_log(
            request=request,
            action='create',
            model_name='Project',
            object_id=project.id,
            object_name=str(project),
            changes={'current_stage': project.current_stage, 'status': project.status}
        )
        return Response(ProjectSerializer(project).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, ProjectWritePermission])
def project_detail(request, pk):
    """Retrieve, update or soft-delete a project"""
    project = get_object_or_404(Project.objects.exclude(status='deleted'), pk=pk)

    if request.method == 'GET':
        return Response(ProjectSerializer(project).data)

    if request.method == 'DELETE':
        project.status = 'deleted'
        project.save(update_fields=['status', 'updated_at'])
        logger.info(f"User {request.user.username} deleted project {project.id}")
        create_audit_log(
            request=request,
            action='delete',
            model_name='Project',
            object_id=project.id,
            object_name=str(project)
        )
        return Response(status=status.HTTP_204_NO_CONTENT)

    before = ProjectSerializer(project).data
    serializer = ProjectSerializer(project, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    project = serializer.save()
    after = ProjectSerializer(project).data

    changes = _audit_changes(before, {k: after[k] for k in serializer.validated_data})
    action = 'stage_change' if 'current_stage' in changes else 'update'
    create_audit_log(
        request=request,
        action=action,
        model_name='Project',
        object_id=project.id,
        object_name=str(project),
        changes=changes
    )
    return Response(after)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def stage_catalog(request):
    """Static stage catalog and its display groups"""
    return Response({
        'stages': list(PROJECT_STAGES),
        'groups': [
            {
                'name': group.name,
                'color': group.color,
                'stages': [stage.value for stage in group.stages],
            }
            for group in STAGE_GROUPS
        ],
    })
