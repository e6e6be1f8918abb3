"""
Custom permission classes for the skill swap API.
"""

from rest_framework import permissions


class IsStaffUser(permissions.BasePermission):
    """
    Permission class that allows only staff users to access the endpoint.

    Used by the moderation endpoints under /api/admin/.

    Usage:
        class MyView(APIView):
            permission_classes = [IsAuthenticated, IsStaffUser]
    """

    message = 'You do not have permission to perform this action. Staff privileges required.'

    def has_permission(self, request, view):
        # User must be authenticated
        if not request.user or not request.user.is_authenticated:
            return False

        return request.user.is_staff
