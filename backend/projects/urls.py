from django.urls import path
from .views import project_list_create, project_detail, stage_catalog

urlpatterns = [
    path('projects/', project_list_create, name='project-list-create'),
    path('projects/stages/', stage_catalog, name='project-stage-catalog'),
    path('projects/<int:pk>/', project_detail, name='project-detail'),
]
