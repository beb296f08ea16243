"""
Custom permission classes for the sensasiwangi.id marketplace.
"""

from rest_framework import permissions


class IsStaffUser(permissions.BasePermission):
    """
    Allows access only to staff users (moderators and payment admins).

    Usage:
        class MyView(APIView):
            permission_classes = [IsAuthenticated, IsStaffUser]
    """

    message = 'You do not have permission to perform this action. Staff privileges required.'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        return request.user.is_staff


class IsSambatanParticipant(permissions.BasePermission):
    """
    Object-level permission for a Sambatan: the requesting user must be one
    of its participants.
    """

    message = 'Only participants of this Sambatan can perform this action.'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        return obj.participants.filter(participant_id=request.user.id).exists()


class IsNotificationOwner(permissions.BasePermission):
    """Users may only touch their own notifications."""

    message = 'You do not have permission to modify this notification.'

    def has_object_permission(self, request, view, obj):
        return obj.user_id == request.user.id
