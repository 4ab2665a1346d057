from django.apps import AppConfig


class ProjectsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'backend.projects'
    label = 'projects'

    def ready(self):
        """Refuse to start with an inconsistent stage catalog"""
        from .stages import validate_stage_groups
        validate_stage_groups()
