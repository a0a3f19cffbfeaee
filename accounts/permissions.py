from rest_framework.permissions import BasePermission


def has_role(request, role):
    return getattr(request.user, 'role', None) == role


class IsUser(BasePermission):
    message = 'User access only'

    def has_permission(self, request, view):
        return has_role(request, 'user')


class IsAdmin(BasePermission):
    message = 'Admin access only'

    def has_permission(self, request, view):
        return has_role(request, 'admin')


class IsApprovedAgent(BasePermission):
    message = 'Agent verification required'

    def has_permission(self, request, view):
        return has_role(request, 'agent') and request.user.is_approved


class IsUserOrAdmin(BasePermission):
    message = 'User or admin access only'

    def has_permission(self, request, view):
        return has_role(request, 'user') or has_role(request, 'admin')
