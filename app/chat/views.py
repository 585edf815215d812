"""
ViewSets for chat API.

This module provides REST API endpoints for the chat system:
- GroupViewSet: Group lifecycle, membership and admin actions
- GroupMessageViewSet: Messages of a group (nested under group)
- MessageViewSet: Actions on a single message
- MemberGroupsView: A member's group directory

URL Structure:
    /api/v1/chat/groups/                                GET, POST
    /api/v1/chat/groups/{id}/                           GET, PATCH, DELETE
    /api/v1/chat/groups/{id}/members/                   POST
    /api/v1/chat/groups/{id}/members/{member_id}/       DELETE
    /api/v1/chat/groups/{id}/admins/                    POST
    /api/v1/chat/groups/{id}/admins/{member_id}/        DELETE
    /api/v1/chat/groups/{id}/leave/                     POST
    /api/v1/chat/groups/{id}/read/                      POST
    /api/v1/chat/groups/{group_pk}/messages/            GET, POST
    /api/v1/chat/messages/{id}/                         DELETE
    /api/v1/chat/messages/{id}/seen/                    POST
    /api/v1/chat/members/{member_id}/groups/            GET

Design Decisions:
    - All state changes go through the service layer
    - Service failures are mapped to HTTP statuses by ServiceResponseMixin
    - Read access is checked by permission classes; authority rules
      that protect invariants are checked again by the services
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.db.models import prefetch_related_objects
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
    extend_schema_view,
)
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import NotFoundError
from core.services import ServiceResult
from core.viewset_mixins import ServiceResponseMixin

from chat.models import ChatGroup, Message
from chat.pagination import MessageCursorPagination
from chat.permissions import (
    CanDeleteMessage,
    IsGroupAdmin,
    IsGroupMember,
    IsSelfOrStaff,
)
from chat.serializers import (
    GroupCreateSerializer,
    GroupRenameSerializer,
    GroupSerializer,
    GroupSummarySerializer,
    MarkedSeenSerializer,
    MemberIdSerializer,
    MessageCreateSerializer,
    MessageSerializer,
)
from chat.services import (
    DirectoryService,
    MembershipService,
    MessageService,
    UnseenService,
)

User = get_user_model()

ERROR_RESPONSES = {
    400: OpenApiResponse(description="Invalid input"),
    403: OpenApiResponse(description="Not allowed for this member"),
    404: OpenApiResponse(description="Group, message or member not found"),
    409: OpenApiResponse(description="Conflicts with the group's current state"),
}


def _member_not_found(member_id) -> ServiceResult:
    return ServiceResult.failure(
        f"Member {member_id} not found",
        error_code="MEMBER_NOT_FOUND",
        error_type=NotFoundError,
    )


def _get_member(member_id, active_only=True) -> User | None:
    """Look up a member; removal paths also accept deactivated accounts."""
    members = User.objects.filter(id=member_id)
    if active_only:
        members = members.filter(is_active=True)
    return members.first()


@extend_schema_view(
    list=extend_schema(
        operation_id="list_groups",
        summary="List my groups",
        description="Groups in the caller's directory with their unseen counts.",
        responses={200: GroupSummarySerializer(many=True)},
        tags=["Chat - Groups"],
    ),
    create=extend_schema(
        operation_id="create_group",
        summary="Create group",
        request=GroupCreateSerializer,
        responses={201: GroupSerializer, **ERROR_RESPONSES},
        tags=["Chat - Groups"],
    ),
    retrieve=extend_schema(
        operation_id="get_group",
        summary="Get group",
        responses={200: GroupSerializer, **ERROR_RESPONSES},
        tags=["Chat - Groups"],
    ),
    partial_update=extend_schema(
        operation_id="rename_group",
        summary="Rename group",
        request=GroupRenameSerializer,
        responses={200: GroupSerializer, **ERROR_RESPONSES},
        tags=["Chat - Groups"],
    ),
    destroy=extend_schema(
        operation_id="delete_group",
        summary="Delete group",
        responses={204: None, **ERROR_RESPONSES},
        tags=["Chat - Groups"],
    ),
)
class GroupViewSet(ServiceResponseMixin, viewsets.GenericViewSet):
    """
    ViewSet for group operations.

    list:
        Groups recorded in the caller's directory, with unseen counts.

    create:
        Create a group. The caller becomes its only admin.

    retrieve:
        Get group details. Members only.

    partial_update:
        Rename the group. Admins only.

    destroy:
        Delete the group and all of its messages. Admins only.

    add_member / remove_member:
        Any member may add; only admins may remove.

    promote_admin / demote_admin:
        Admins grant or take admin rights. The last admin cannot be demoted.

    leave:
        Leave the group. The last admin must promote a successor first.

    read:
        Mark every message in the group seen by the caller.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = GroupSerializer
    lookup_value_regex = r"\d+"
    queryset = ChatGroup.objects.select_related("last_message").prefetch_related(
        "memberships"
    )

    def get_permissions(self):
        """Return permissions based on action."""
        if self.action == "partial_update":
            return [IsAuthenticated(), IsGroupAdmin()]
        if self.action in ("retrieve", "add_member", "read"):
            return [IsAuthenticated(), IsGroupMember()]
        return [IsAuthenticated()]

    def _group_response(self, result: ServiceResult, success_status=status.HTTP_200_OK):
        """Render a group result, reloading memberships changed by the service."""
        if result.success:
            result = ServiceResult.success(self.get_queryset().get(pk=result.data.pk))
        return self.service_response(result, GroupSerializer, success_status=success_status)

    def list(self, request):
        """List the caller's groups with unseen counts."""
        result = DirectoryService.summary_for(request.user.id)
        return self.service_response(result, GroupSummarySerializer, many=True)

    def create(self, request):
        """Create a group with the caller as admin."""
        serializer = GroupCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = MembershipService.create_group(
            creator=request.user,
            name=serializer.validated_data["name"],
            initial_members=serializer.get_members(),
        )
        return self._group_response(result, success_status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        """Get a group the caller belongs to."""
        group = self.get_object()
        return Response(GroupSerializer(group, context=self.get_serializer_context()).data)

    def partial_update(self, request, pk=None):
        """Rename a group."""
        group = self.get_object()
        serializer = GroupRenameSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = MembershipService.rename_group(group.id, serializer.validated_data["name"])
        return self._group_response(result)

    def destroy(self, request, pk=None):
        """Delete a group and its messages."""
        result = MembershipService.delete_group(int(pk), acting_admin=request.user)
        return self.service_response(result)

    @extend_schema(
        operation_id="add_group_member",
        summary="Add member",
        request=MemberIdSerializer,
        responses={200: GroupSerializer, **ERROR_RESPONSES},
        tags=["Chat - Members"],
    )
    @action(detail=True, methods=["post"], url_path="members")
    def add_member(self, request, pk=None):
        """Add a user to the group."""
        group = self.get_object()
        serializer = MemberIdSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        member_id = serializer.validated_data["member_id"]
        member = _get_member(member_id)
        if member is None:
            return self.service_error_response(_member_not_found(member_id))

        result = MembershipService.add_member(group.id, member)
        return self._group_response(result)

    @extend_schema(
        operation_id="remove_group_member",
        summary="Remove member",
        responses={200: GroupSerializer, **ERROR_RESPONSES},
        tags=["Chat - Members"],
    )
    @action(
        detail=True,
        methods=["delete"],
        url_path=r"members/(?P<member_id>\d+)",
    )
    def remove_member(self, request, pk=None, member_id=None):
        """Remove a member from the group (admins only)."""
        member = _get_member(member_id, active_only=False)
        if member is None:
            return self.service_error_response(_member_not_found(member_id))

        result = MembershipService.remove_member(
            int(pk), acting_admin=request.user, member=member
        )
        return self._group_response(result)

    @extend_schema(
        operation_id="promote_group_admin",
        summary="Promote member to admin",
        request=MemberIdSerializer,
        responses={200: GroupSerializer, **ERROR_RESPONSES},
        tags=["Chat - Members"],
    )
    @action(detail=True, methods=["post"], url_path="admins")
    def promote_admin(self, request, pk=None):
        """Give a member admin rights."""
        serializer = MemberIdSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        member_id = serializer.validated_data["member_id"]
        member = _get_member(member_id)
        if member is None:
            return self.service_error_response(_member_not_found(member_id))

        result = MembershipService.promote_admin(
            int(pk), acting_admin=request.user, member=member
        )
        return self._group_response(result)

    @extend_schema(
        operation_id="demote_group_admin",
        summary="Demote admin",
        responses={200: GroupSerializer, **ERROR_RESPONSES},
        tags=["Chat - Members"],
    )
    @action(
        detail=True,
        methods=["delete"],
        url_path=r"admins/(?P<member_id>\d+)",
    )
    def demote_admin(self, request, pk=None, member_id=None):
        """Take admin rights from a member."""
        member = _get_member(member_id, active_only=False)
        if member is None:
            return self.service_error_response(_member_not_found(member_id))

        result = MembershipService.demote_admin(
            int(pk), acting_admin=request.user, member=member
        )
        return self._group_response(result)

    @extend_schema(
        operation_id="leave_group",
        summary="Leave group",
        request=None,
        responses={200: GroupSerializer, **ERROR_RESPONSES},
        tags=["Chat - Members"],
    )
    @action(detail=True, methods=["post"])
    def leave(self, request, pk=None):
        """Leave the group."""
        result = MembershipService.leave_group(int(pk), member=request.user)
        return self._group_response(result)

    @extend_schema(
        operation_id="mark_group_read",
        summary="Mark group as read",
        request=None,
        responses={200: MarkedSeenSerializer, **ERROR_RESPONSES},
        tags=["Chat - Messages"],
    )
    @action(detail=True, methods=["post"])
    def read(self, request, pk=None):
        """Mark all of the caller's unseen messages in the group as seen."""
        group = self.get_object()
        result = UnseenService.mark_group_seen(group.id, member=request.user)
        if not result.success:
            return self.service_error_response(result)
        return Response({"marked_seen": result.data})


@extend_schema_view(
    list=extend_schema(
        operation_id="list_group_messages",
        summary="List messages",
        description="Messages of the group, oldest first, cursor paginated.",
        parameters=[
            OpenApiParameter(
                name="mark_seen",
                type=OpenApiTypes.BOOL,
                location=OpenApiParameter.QUERY,
                description="Mark the returned messages as seen by the caller",
                required=False,
            ),
        ],
        responses={200: MessageSerializer(many=True), **ERROR_RESPONSES},
        tags=["Chat - Messages"],
    ),
    create=extend_schema(
        operation_id="post_group_message",
        summary="Post message",
        description="Send a JSON text body, or a multipart request with a file part.",
        request=MessageCreateSerializer,
        responses={201: MessageSerializer, **ERROR_RESPONSES},
        tags=["Chat - Messages"],
    ),
)
class GroupMessageViewSet(ServiceResponseMixin, viewsets.GenericViewSet):
    """
    ViewSet for messages nested under a group.

    list:
        Messages of the group in store order. Members only.
        Pass mark_seen=true to mark the returned page as seen.

    create:
        Post a text or file message. Members only.
    """

    permission_classes = [IsAuthenticated, IsGroupMember]
    pagination_class = MessageCursorPagination
    serializer_class = MessageSerializer
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return Message.objects.none()
        return Message.objects.filter(group_id=self.kwargs["group_pk"])

    def list(self, request, group_pk=None):
        """List messages of the group."""
        result = MessageService.list_messages(int(group_pk))
        if not result.success:
            return self.service_error_response(result)

        mark_seen = request.query_params.get("mark_seen", "").lower() in ("1", "true", "yes")
        if not mark_seen:
            page = self.paginate_queryset(result.data)
            serializer = MessageSerializer(page, many=True, context=self.get_serializer_context())
            return self.get_paginated_response(serializer.data)

        page = self.paginate_queryset(result.data.prefetch_related(None))
        UnseenService.mark_messages_seen([message.id for message in page], request.user)
        prefetch_related_objects(page, "receipts")
        serializer = MessageSerializer(page, many=True, context=self.get_serializer_context())
        return self.get_paginated_response(serializer.data)

    def create(self, request, group_pk=None):
        """Post a message to the group."""
        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = MessageService.post_message(
            int(group_pk),
            sender=request.user,
            content=serializer.to_content(),
        )
        if not result.success:
            return self.service_error_response(result)

        message = (
            Message.objects.select_related("sender")
            .prefetch_related("receipts")
            .get(pk=result.data.pk)
        )
        return Response(
            MessageSerializer(message, context=self.get_serializer_context()).data,
            status=status.HTTP_201_CREATED,
        )


@extend_schema_view(
    destroy=extend_schema(
        operation_id="delete_message",
        summary="Delete message",
        description="The sender or an admin of the message's group may delete it.",
        responses={204: None, **ERROR_RESPONSES},
        tags=["Chat - Messages"],
    ),
)
class MessageViewSet(ServiceResponseMixin, viewsets.GenericViewSet):
    """
    ViewSet for single-message actions.

    destroy:
        Delete a message. Sender or group admin only.

    seen:
        Mark the message seen by the caller. Idempotent.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = MessageSerializer
    lookup_value_regex = r"\d+"
    queryset = Message.objects.select_related("group")

    def get_permissions(self):
        if self.action == "destroy":
            return [IsAuthenticated(), CanDeleteMessage()]
        return [IsAuthenticated()]

    def destroy(self, request, pk=None):
        """Delete a message."""
        message = self.get_queryset().filter(pk=pk).first()
        if message is not None:
            self.check_object_permissions(request, message)

        result = MessageService.delete_message(int(pk))
        return self.service_response(result)

    @extend_schema(
        operation_id="mark_message_seen",
        summary="Mark message as seen",
        request=None,
        responses={204: None, **ERROR_RESPONSES},
        tags=["Chat - Messages"],
    )
    @action(detail=True, methods=["post"])
    def seen(self, request, pk=None):
        """Mark a message as seen by the caller."""
        result = UnseenService.mark_seen(int(pk), member=request.user)
        if not result.success:
            return self.service_error_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)


class MemberGroupsView(ServiceResponseMixin, APIView):
    """
    A member's group directory.

    GET: Groups recorded for the member, with that member's unseen counts.
    Members may read their own directory; staff may read anyone's.
    """

    permission_classes = [IsAuthenticated, IsSelfOrStaff]

    def get_serializer_context(self):
        return {"request": self.request, "view": self}

    @extend_schema(
        operation_id="list_member_groups",
        summary="List a member's groups",
        responses={200: GroupSummarySerializer(many=True), **ERROR_RESPONSES},
        tags=["Chat - Groups"],
    )
    def get(self, request, member_id):
        result = DirectoryService.summary_for(member_id)
        return self.service_response(result, GroupSummarySerializer, many=True)
