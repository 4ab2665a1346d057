"""
Role resolution for the console.

Maps an authenticated identity to an explicit capability set based on its
Django group membership. Views never inspect e-mail addresses or group names
directly; they ask a RoleResolver (injected through HasCapability) instead.
"""
import enum
import logging

from rest_framework.permissions import BasePermission

logger = logging.getLogger(__name__)


class Capability(str, enum.Enum):
    VIEW_REPORTS = 'view_reports'
    VIEW_REVENUE = 'view_revenue'
    EDIT_PROJECTS = 'edit_projects'
    GENERATE_RECEIPTS = 'generate_receipts'
    MANAGE_USERS = 'manage_users'


ALL_CAPABILITIES = frozenset(Capability)

# Application groups, in the order they are created by create_user_groups
ADMIN_GROUP = 'Admin'
FINANCE_GROUP = 'Finance'
EDITOR_GROUP = 'Editor'
RESTRICTED_GROUP = 'Restricted'
STAFF_GROUP = 'Staff'

GROUP_CAPABILITIES = {
    ADMIN_GROUP: ALL_CAPABILITIES,
    FINANCE_GROUP: frozenset({
        Capability.VIEW_REPORTS,
        Capability.VIEW_REVENUE,
        Capability.GENERATE_RECEIPTS,
    }),
    EDITOR_GROUP: frozenset({
        Capability.VIEW_REPORTS,
        Capability.VIEW_REVENUE,
        Capability.EDIT_PROJECTS,
    }),
    # Shared front-desk account: edits projects but never sees revenue
    RESTRICTED_GROUP: frozenset({
        Capability.VIEW_REPORTS,
        Capability.EDIT_PROJECTS,
    }),
    STAFF_GROUP: frozenset({
        Capability.VIEW_REPORTS,
        Capability.VIEW_REVENUE,
    }),
}


class RoleResolver:
    """Resolve the capability set of a user from its group membership."""

    def __init__(self, group_capabilities=None):
        self.group_capabilities = dict(group_capabilities or GROUP_CAPABILITIES)

    def application_groups(self, user):
        if not user or not user.is_authenticated:
            return []
        names = user.groups.values_list('name', flat=True)
        return [name for name in names if name in self.group_capabilities]

    def resolve(self, user) -> frozenset:
        """
        Return the capabilities of ``user``.

        Group membership wins over superuser/staff flags. A superuser that is
        in no application group gets every capability, so the first admin
        account works before groups exist. Anonymous users get nothing.
        """
        if not user or not user.is_authenticated or not user.is_active:
            return frozenset()

        groups = self.application_groups(user)
        if groups:
            capabilities = set()
            for name in groups:
                capabilities |= self.group_capabilities[name]
            return frozenset(capabilities)

        if user.is_superuser:
            return ALL_CAPABILITIES
        if user.is_staff:
            return self.group_capabilities.get(STAFF_GROUP, frozenset())
        return frozenset()

    def has(self, user, capability) -> bool:
        return Capability(capability) in self.resolve(user)

    def role_flags(self, user):
        """Legacy boolean flags still consumed by the console menu."""
        groups = self.application_groups(user)
        capabilities = self.resolve(user)
        return {
            'is_admin': ADMIN_GROUP in groups or (not groups and bool(user and user.is_superuser)),
            'is_finance': FINANCE_GROUP in groups,
            'is_editor': Capability.EDIT_PROJECTS in capabilities,
            'is_restricted': Capability.VIEW_REPORTS in capabilities and Capability.VIEW_REVENUE not in capabilities,
        }


role_resolver = RoleResolver()


class CapabilityPermission(BasePermission):
    """DRF permission granting access when the user holds ``capability``."""
    capability = None
    resolver = role_resolver
    message = 'You do not have permission to perform this action.'

    def has_permission(self, request, view):
        allowed = self.resolver.has(request.user, self.capability)
        if not allowed:
            logger.info(
                f"Denied {self.capability.value} to user "
                f"{getattr(request.user, 'username', None) or 'anonymous'}"
            )
        return allowed


def HasCapability(capability, resolver=None):
    """
    Build a permission class for ``capability``.

    Usage:
        @permission_classes([IsAuthenticated, HasCapability(Capability.VIEW_REPORTS)])
    """
    capability = Capability(capability)
    attrs = {
        'capability': capability,
        'resolver': resolver or role_resolver,
        'message': f'Missing capability: {capability.value}',
    }
    return type(f'Has{capability.name.title().replace("_", "")}', (CapabilityPermission,), attrs)


def SafeOrCapability(capability, resolver=None):
    """Allow read-only methods to everyone authenticated, writes only with ``capability``."""
    base = HasCapability(capability, resolver)

    class _SafeOrCapability(base):
        def has_permission(self, request, view):
            if request.method in ('GET', 'HEAD', 'OPTIONS'):
                return True
            return super().has_permission(request, view)

    _SafeOrCapability.__name__ = f'SafeOr{base.__name__}'
    return _SafeOrCapability
