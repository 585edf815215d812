"""
Permission classes for chat API.

This module provides DRF permission classes for the chat system:
- IsGroupMember: User is a member of the group
- IsGroupAdmin: User is an admin of the group
- CanDeleteMessage: User sent the message or administers its group
- IsSelfOrStaff: User is reading their own data, or is staff

Permission Levels:
    ADMIN can:
        - All MEMBER permissions
        - Rename the group
        - Delete the group
        - Remove members
        - Promote and demote admins
        - Delete any message in the group

    MEMBER can:
        - View the group and its messages
        - Add members
        - Post messages
        - Delete own messages
        - Leave the group

Design Decisions:
    - Checks read GroupMembership rows, not cached counts
    - Nested routes (groups/{group_pk}/...) check membership in has_permission
    - A group that does not exist passes the check so the view can answer 404
    - Authority rules that protect invariants (admin-only removal, last
      admin) are enforced again by the service layer
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import permissions

from chat.models import ChatGroup, GroupMembership, Message

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView


def _group_of(obj) -> ChatGroup:
    if isinstance(obj, Message):
        return obj.group
    return obj


class IsGroupMember(permissions.BasePermission):
    """
    Allows access only to members of the group.

    Works for group detail routes (object check) and for nested routes
    that carry the group id as group_pk in the URL.
    """

    message = "You are not a member of this group."

    def has_permission(self, request: Request, view: APIView) -> bool:
        """Check membership for nested routes."""
        if not request.user.is_authenticated:
            return False

        group_id = view.kwargs.get("group_pk")
        if group_id is None:
            return True

        if not ChatGroup.objects.filter(id=group_id).exists():
            return True

        return GroupMembership.objects.filter(
            group_id=group_id, member=request.user
        ).exists()

    def has_object_permission(self, request: Request, view: APIView, obj) -> bool:
        """Check if user is a member of the object's group."""
        if not request.user.is_authenticated:
            return False
        return _group_of(obj).is_member(request.user.id)


class IsGroupAdmin(permissions.BasePermission):
    """
    Allows access only to admins of the group.

    Used for renaming the group.
    """

    message = "Only group admins can perform this action."

    def has_object_permission(self, request: Request, view: APIView, obj) -> bool:
        """Check if user is an admin of the object's group."""
        if not request.user.is_authenticated:
            return False
        return _group_of(obj).is_admin(request.user.id)


class CanDeleteMessage(permissions.BasePermission):
    """
    Permission for deleting messages.

    The sender may delete their own message; group admins may delete any
    message in their group.
    """

    message = "You can only delete your own messages."

    def has_object_permission(self, request: Request, view: APIView, obj) -> bool:
        """Check if user can delete this message."""
        if not request.user.is_authenticated:
            return False

        if not isinstance(obj, Message):
            return False

        if obj.sender_id == request.user.id:
            return True

        return obj.group.is_admin(request.user.id)


class IsSelfOrStaff(permissions.BasePermission):
    """
    Allows a user to read data keyed by their own member id.

    Staff may read any member's data.
    """

    message = "You can only view your own groups."

    def has_permission(self, request: Request, view: APIView) -> bool:
        if not request.user.is_authenticated:
            return False
        if request.user.is_staff:
            return True
        return str(view.kwargs.get("member_id")) == str(request.user.id)
