"""
Serializers for chat API.

This module provides serializers for the chat system:
- Group serializers (read, summary, create, rename)
- Membership serializers (member id payloads)
- Message serializers (read, preview, create)

Serializer Hierarchy:
    GroupSerializer: Group with member and admin ids and last message preview
    GroupSummarySerializer: GroupSerializer plus the caller's unseen count
    GroupCreateSerializer: Group creation input
    GroupRenameSerializer: Group rename input
    MemberIdSerializer: Body of add-member and promote-admin requests

    MessageSerializer: Message with sender, file payload and seen state
    MessagePreviewSerializer: Minimal message for group listings
    MessageCreateSerializer: Text body or uploaded file

Design Decisions:
    - Read and write serializers are separate for clarity
    - File payloads are returned inline as base64 with their metadata
    - Blank names and bodies pass through to the service layer, which
      reports them with its own error codes
"""

from __future__ import annotations

import base64

from django.contrib.auth import get_user_model
from rest_framework import serializers

from authentication.serializers import MemberSerializer
from chat.constants import MESSAGE_CONFIG
from chat.content import FileContent, MessageContent, TextContent
from chat.models import ChatGroup, Message, MessageReceipt
from chat.services import GroupSummary

User = get_user_model()


# =============================================================================
# Message Serializers
# =============================================================================


class MessagePreviewSerializer(serializers.ModelSerializer):
    """
    Minimal message serializer for group listings.

    Shows the body for text messages and the file name for files.
    """

    preview = serializers.CharField(read_only=True)

    class Meta:
        model = Message
        fields = [
            "id",
            "sender_id",
            "kind",
            "preview",
            "created_at",
        ]
        read_only_fields = fields


class SeenEntrySerializer(serializers.ModelSerializer):
    """One entry of a message's seen log."""

    class Meta:
        model = MessageReceipt
        fields = ["member_id", "seen_at"]
        read_only_fields = fields


class MessageSerializer(serializers.ModelSerializer):
    """
    Full message serializer for message lists.

    Expects receipts to be prefetched; unseen_by and seen_by are built
    from them without extra queries.
    """

    group_id = serializers.IntegerField(read_only=True)
    sender = MemberSerializer(read_only=True)
    body = serializers.SerializerMethodField(
        help_text="Text body (null for file messages)"
    )
    file = serializers.SerializerMethodField(
        help_text="File metadata and base64 payload (null for text messages)"
    )
    unseen_by = serializers.SerializerMethodField(
        help_text="Ids of recipients who have not seen the message"
    )
    seen_by = serializers.SerializerMethodField(
        help_text="Recipients who saw the message, earliest first"
    )

    class Meta:
        model = Message
        fields = [
            "id",
            "group_id",
            "sender",
            "kind",
            "body",
            "file",
            "created_at",
            "unseen_by",
            "seen_by",
        ]
        read_only_fields = fields

    def get_body(self, obj: Message) -> str | None:
        if obj.is_file:
            return None
        return obj.body

    def get_file(self, obj: Message) -> dict | None:
        """Return file metadata and payload, or None for text messages."""
        content = obj.content
        if not isinstance(content, FileContent):
            return None
        return {
            "file_name": content.file_name,
            "content_type": content.content_type,
            "size": obj.file_size,
            "data": base64.b64encode(content.payload).decode("ascii"),
        }

    def get_unseen_by(self, obj: Message) -> list[int]:
        return obj.unseen_by_ids()

    def get_seen_by(self, obj: Message) -> list[dict]:
        return SeenEntrySerializer(obj.seen_log(), many=True).data


class MessageCreateSerializer(serializers.Serializer):
    """
    Serializer for posting messages.

    Send either a JSON body {"body": "..."} or a multipart upload with a
    "file" part. Use to_content() to get the matching content variant.
    """

    body = serializers.CharField(
        required=False,
        allow_blank=True,
        trim_whitespace=False,
        help_text="Text body of a text message",
    )
    file = serializers.FileField(
        required=False,
        allow_empty_file=True,
        use_url=False,
        help_text="File to post as a file message",
    )

    def validate(self, attrs: dict) -> dict:
        """Require exactly one of body or file."""
        has_body = "body" in attrs
        has_file = attrs.get("file") is not None
        if has_body == has_file:
            raise serializers.ValidationError(
                "Provide either a text body or a file, not both."
                if has_body
                else "Provide a text body or a file."
            )
        return attrs

    def to_content(self) -> MessageContent:
        """Build TextContent or FileContent from validated data."""
        upload = self.validated_data.get("file")
        if upload is None:
            return TextContent(body=self.validated_data["body"])
        return FileContent(
            payload=upload.read(),
            content_type=getattr(upload, "content_type", "")
            or MESSAGE_CONFIG.DEFAULT_CONTENT_TYPE,
            file_name=upload.name or "",
        )


# =============================================================================
# Group Serializers
# =============================================================================


class GroupSerializer(serializers.ModelSerializer):
    """
    Read serializer for chat groups.

    members and admins are id lists in the order members were added.
    """

    members = serializers.SerializerMethodField(help_text="Member ids")
    admins = serializers.SerializerMethodField(help_text="Admin ids")
    created_by = serializers.PrimaryKeyRelatedField(read_only=True)
    last_message = MessagePreviewSerializer(read_only=True, allow_null=True)

    class Meta:
        model = ChatGroup
        fields = [
            "id",
            "name",
            "members",
            "admins",
            "created_by",
            "created_at",
            "updated_at",
            "last_message",
        ]
        read_only_fields = fields

    def get_members(self, obj: ChatGroup) -> list[int]:
        return obj.member_ids()

    def get_admins(self, obj: ChatGroup) -> list[int]:
        return obj.admin_ids()


class GroupSummarySerializer(GroupSerializer):
    """Group listing entry with the caller's unseen message count."""

    unseen_count = serializers.IntegerField(read_only=True)

    class Meta(GroupSerializer.Meta):
        fields = GroupSerializer.Meta.fields + ["unseen_count"]
        read_only_fields = fields

    def to_representation(self, instance: GroupSummary) -> dict:
        data = super().to_representation(instance.group)
        data["unseen_count"] = instance.unseen_count
        return data


class GroupCreateSerializer(serializers.Serializer):
    """
    Serializer for creating groups.

    The requesting user becomes the admin and does not need to be listed.
    """

    name = serializers.CharField(
        allow_blank=True,
        help_text="Group name",
    )
    member_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        required=False,
        default=list,
        help_text="Ids of users to add as members",
    )

    def validate_member_ids(self, value: list[int]) -> list[int]:
        """Ensure all member ids are active users."""
        existing = set(
            User.objects.filter(id__in=value, is_active=True).values_list(
                "id", flat=True
            )
        )
        invalid = [uid for uid in value if uid not in existing]
        if invalid:
            raise serializers.ValidationError(f"Users not found or inactive: {invalid}")
        return value

    def get_members(self) -> list:
        """Users for the validated member ids, in request order."""
        ids = self.validated_data.get("member_ids", [])
        users = User.objects.in_bulk(ids)
        return [users[uid] for uid in ids if uid in users]


class GroupRenameSerializer(serializers.Serializer):
    """Serializer for renaming a group."""

    name = serializers.CharField(
        allow_blank=True,
        help_text="New group name",
    )


class MemberIdSerializer(serializers.Serializer):
    """Body of requests that name a member (add member, promote admin)."""

    member_id = serializers.IntegerField(min_value=1, help_text="User id")


class MarkedSeenSerializer(serializers.Serializer):
    """Response of the mark-group-read endpoint."""

    marked_seen = serializers.IntegerField(
        help_text="Number of messages that were newly marked seen"
    )


__all__ = [
    "GroupCreateSerializer",
    "GroupRenameSerializer",
    "GroupSerializer",
    "GroupSummarySerializer",
    "MarkedSeenSerializer",
    "MemberIdSerializer",
    "MessageCreateSerializer",
    "MessagePreviewSerializer",
    "MessageSerializer",
    "SeenEntrySerializer",
]
