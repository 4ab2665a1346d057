from django.core.management.base import BaseCommand
from django.contrib.auth.models import Group, Permission

from backend.core.roles import (
    ADMIN_GROUP, FINANCE_GROUP, EDITOR_GROUP, RESTRICTED_GROUP, STAFF_GROUP,
    GROUP_CAPABILITIES,
)


class Command(BaseCommand):
    help = 'Create Django user groups for RBAC: Admin, Finance, Editor, Restricted, Staff'

    def handle(self, *args, **options):
        groups_config = [
            {
                'name': ADMIN_GROUP,
                'description': 'Owners and developers - full access including backend admin',
            },
            {
                'name': FINANCE_GROUP,
                'description': 'Accounts team - reports with revenue, payment receipts',
            },
            {
                'name': EDITOR_GROUP,
                'description': 'Project coordinators - create and update projects, reports',
            },
            {
                'name': RESTRICTED_GROUP,
                'description': 'Shared front-desk account - projects and reports without revenue',
            },
            {
                'name': STAFF_GROUP,
                'description': 'Read-only staff - reports only',
            },
        ]

        created_count = 0
        updated_count = 0

        for group_config in groups_config:
            group, created = Group.objects.get_or_create(name=group_config['name'])

            if created:
                self.stdout.write(self.style.SUCCESS(f'✓ Created group: {group_config["name"]}'))
                created_count += 1
            else:
                self.stdout.write(f'  Group already exists: {group_config["name"]}')
                updated_count += 1

            capabilities = sorted(c.value for c in GROUP_CAPABILITIES[group_config['name']])
            self.stdout.write(f'  Capabilities: {", ".join(capabilities)}')

            # Only the Admin group gets Django model permissions (for /admin/)
            if group_config['name'] == ADMIN_GROUP:
                group.permissions.set(Permission.objects.all())
                self.stdout.write('  Added all permissions to Admin group')

        self.stdout.write(self.style.SUCCESS(
            f'\nCompleted: {created_count} groups created, {updated_count} groups already existed'
        ))
