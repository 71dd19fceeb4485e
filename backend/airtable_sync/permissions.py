from rest_framework import permissions

from .authentication import CRON_AUTH, WEBHOOK_AUTH


class IsStaffUser(permissions.BasePermission):
    """Permission to check if user is an authenticated staff member."""

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return bool(request.user.is_staff)


class IsCronOrStaff(permissions.BasePermission):
    """Scheduler calling with CRON_SECRET, or a staff user triggering a manual sync."""

    def has_permission(self, request, view):
        if request.auth == CRON_AUTH:
            return True
        return IsStaffUser().has_permission(request, view)


class IsAirtableWebhook(permissions.BasePermission):

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return True
        return request.auth == WEBHOOK_AUTH
