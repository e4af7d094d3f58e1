from rest_framework import permissions


class IsPlatformAdmin(permissions.BasePermission):
    """Permission class for staff accounts and users with the admin role"""

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and (user.is_staff or user.role == 'admin'))


class IsCampaignOwnerOrAdmin(permissions.BasePermission):
    """Only the campaign's creator or a platform admin may act on it"""

    def has_object_permission(self, request, view, obj):
        user = request.user
        if user.is_staff or user.role == 'admin':
            return True
        return obj.created_by_id == user.id
