"""
Chat system models.

This module defines the data models for group chat:

Models:
    ChatGroup: Named group of members with at least one admin
    GroupMembership: A member's place in a group, with the admin flag
    Message: Text or file message posted to a group
    MessageReceipt: Per-recipient unseen marker and seen log entry
    DirectoryEntry: A member's recorded list of groups they were put in

Design Decisions:
    - Admin is a flag on the membership row, so every admin is a member
    - The service layer keeps at least one admin per group
    - Unseen state is stored per message and recipient rather than as a
      read watermark, which keeps the exact time each member saw each message
    - The sender of a message never gets a receipt for it
    - Directory entries hold a plain group id, not a foreign key; they outlive
      removals and group deletion and readers skip ids that no longer resolve
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import Q

from chat.content import FileContent, MessageContent, TextContent
from core.models import BaseModel


class MessageKind(models.TextChoices):
    """
    Kind of message content.

    TEXT: Member-authored text, body is required
    FILE: Uploaded file, payload bytes and file name are required
    """

    TEXT = "text", "Text"
    FILE = "file", "File"


class ChatGroup(BaseModel):
    """
    A named chat group.

    Lifecycle:
        Active: has at least one member and one admin
        Deleted: row removed, messages and memberships cascade; members'
                 directory entries keep pointing at the old id

    Fields:
        name: Display name, non-empty
        created_by: Member who created the group (null if that account is gone)
        last_message: Most recent message in the group, if any

    Relationships:
        memberships: GroupMembership rows, in the order members were added
        members: Users in the group (through GroupMembership)
        messages: Message rows owned by the group
    """

    name = models.CharField(
        max_length=100,
        help_text="Group display name",
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_chat_groups",
        help_text="Member who created this group",
    )

    members = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        through="GroupMembership",
        related_name="chat_groups",
        help_text="Members of this group",
    )

    last_message = models.ForeignKey(
        "chat.Message",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Most recent message posted to this group",
    )

    class Meta:
        db_table = "chat_group"
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return f"Group: {self.name}" if self.name else f"Group({self.pk})"

    def member_ids(self) -> list[int]:
        """
        Member ids in the order they were added.

        Reads memberships.all() so a prefetch_related("memberships") is used.
        """
        return [m.member_id for m in self.memberships.all()]

    def admin_ids(self) -> list[int]:
        """Admin ids in the order they became members."""
        return [m.member_id for m in self.memberships.all() if m.is_admin]

    def is_member(self, user_id: int) -> bool:
        """Check if the user is a member of this group."""
        return self.memberships.filter(member_id=user_id).exists()

    def is_admin(self, user_id: int) -> bool:
        """Check if the user is an admin of this group."""
        return self.memberships.filter(member_id=user_id, is_admin=True).exists()


class GroupMembership(BaseModel):
    """
    A member's place in a group.

    Fields:
        group: Group this membership belongs to
        member: User in the group
        is_admin: Whether the member may manage the group

    Constraints:
        - UniqueConstraint(group, member): a member appears once per group
    """

    group = models.ForeignKey(
        ChatGroup,
        on_delete=models.CASCADE,
        related_name="memberships",
        help_text="Group this membership belongs to",
    )

    member = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="chat_memberships",
        help_text="Member of the group",
    )

    is_admin = models.BooleanField(
        default=False,
        help_text="Whether this member is a group admin",
    )

    class Meta:
        db_table = "chat_group_membership"
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(
                fields=["group", "member"],
                name="unique_group_membership",
            ),
        ]
        indexes = [
            # Admin lookups for authority checks
            models.Index(
                fields=["group", "is_admin"],
                name="chat_member_group_admin_idx",
            ),
        ]

    def __str__(self) -> str:
        role = " (admin)" if self.is_admin else ""
        return f"Membership: {self.member_id} in {self.group_id}{role}"


class Message(BaseModel):
    """
    A message posted to a group.

    Content Kinds:
        TEXT: body holds the text
        FILE: file_data holds the bytes, with file_name, file_content_type
              and file_size describing them

    The kind-specific columns are checked by a database constraint; in code
    use the content property, which returns a TextContent or FileContent.

    Fields:
        group: Owning group (messages are deleted with it)
        sender: Member who posted the message
        kind: Content kind
        body: Text body (empty for files)
        file_data: File bytes (null for text)
        file_content_type: MIME type of the file
        file_name: Original file name
        file_size: Payload size in bytes
    """

    group = models.ForeignKey(
        ChatGroup,
        on_delete=models.CASCADE,
        related_name="messages",
        help_text="Group this message belongs to",
    )

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_chat_messages",
        help_text="Member who posted this message",
    )

    kind = models.CharField(
        max_length=10,
        choices=MessageKind.choices,
        default=MessageKind.TEXT,
        help_text="Content kind (text or file)",
    )

    body = models.TextField(
        blank=True,
        default="",
        help_text="Text body for text messages",
    )

    file_data = models.BinaryField(
        null=True,
        blank=True,
        help_text="File payload for file messages",
    )

    file_content_type = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="MIME type of the file payload",
    )

    file_name = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Original name of the uploaded file",
    )

    file_size = models.PositiveBigIntegerField(
        default=0,
        help_text="Size of the file payload in bytes",
    )

    class Meta:
        db_table = "chat_message"
        ordering = ["created_at", "id"]
        indexes = [
            # Messages in a group (cursor pagination)
            models.Index(
                fields=["group", "created_at", "id"],
                name="chat_msg_group_cursor_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    (Q(kind=MessageKind.TEXT) & ~Q(body=""))
                    | (Q(kind=MessageKind.FILE) & ~Q(file_name=""))
                ),
                name="chat_message_content_matches_kind",
            ),
        ]

    def __str__(self) -> str:
        return f"User {self.sender_id}: {self.preview}"

    @property
    def is_file(self) -> bool:
        """Check if this is a file message."""
        return self.kind == MessageKind.FILE

    @property
    def content(self) -> MessageContent:
        """The message payload as a TextContent or FileContent."""
        if self.is_file:
            return FileContent(
                payload=bytes(self.file_data or b""),
                content_type=self.file_content_type,
                file_name=self.file_name,
            )
        return TextContent(body=self.body)

    @property
    def preview(self) -> str:
        """Short text for group listings: the body or the file name."""
        if self.is_file:
            return self.file_name
        return self.body[:50] + "..." if len(self.body) > 50 else self.body

    def unseen_by_ids(self) -> list[int]:
        """Recipients who have not seen this message yet."""
        return [r.member_id for r in self.receipts.all() if r.seen_at is None]

    def seen_log(self) -> list[MessageReceipt]:
        """Receipts of recipients who saw the message, earliest first."""
        return sorted(
            (r for r in self.receipts.all() if r.seen_at is not None),
            key=lambda r: (r.seen_at, r.id),
        )


class MessageReceipt(models.Model):
    """
    Delivery record of one message for one recipient.

    A receipt with seen_at NULL means the recipient has not seen the message;
    once seen_at is set it is never cleared. One row per recipient keeps the
    unseen and seen states mutually exclusive.

    Fields:
        message: Message this receipt tracks
        member: Recipient (a group member other than the sender at post time)
        seen_at: When the recipient marked the message seen (null if unseen)

    Constraints:
        - UniqueConstraint(message, member): one receipt per recipient
    """

    message = models.ForeignKey(
        Message,
        on_delete=models.CASCADE,
        related_name="receipts",
        help_text="Message this receipt tracks",
    )

    member = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="chat_receipts",
        help_text="Recipient of the message",
    )

    seen_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the recipient saw the message (null if unseen)",
    )

    class Meta:
        db_table = "chat_message_receipt"
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(
                fields=["message", "member"],
                name="unique_message_receipt",
            ),
        ]
        indexes = [
            # Unseen counts per member
            models.Index(
                fields=["member", "seen_at"],
                name="chat_receipt_member_seen_idx",
            ),
        ]

    def __str__(self) -> str:
        state = f"seen {self.seen_at:%Y-%m-%d %H:%M}" if self.seen_at else "unseen"
        return f"Receipt: message {self.message_id} for {self.member_id} [{state}]"

    @property
    def is_seen(self) -> bool:
        return self.seen_at is not None


class DirectoryEntry(models.Model):
    """
    A group id recorded in a member's group directory.

    Entries are written when a member creates a group or is added to one and
    are never pruned. group_ref is a plain integer so that the entry survives
    the member's removal and the group's deletion.

    Fields:
        member: Member whose directory this is
        group_ref: Id of the group as it was when recorded
        added_at: When the entry was recorded
    """

    member = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="chat_directory",
        help_text="Member whose directory this entry belongs to",
    )

    group_ref = models.PositiveBigIntegerField(
        db_index=True,
        help_text="Id of the recorded group (may no longer exist)",
    )

    added_at = models.DateTimeField(
        auto_now_add=True,
        help_text="When the group was recorded for this member",
    )

    class Meta:
        db_table = "chat_directory_entry"
        ordering = ["id"]
        verbose_name_plural = "directory entries"
        constraints = [
            models.UniqueConstraint(
                fields=["member", "group_ref"],
                name="unique_directory_entry",
            ),
        ]

    def __str__(self) -> str:
        return f"Directory: {self.member_id} -> group {self.group_ref}"

    @classmethod
    def record(cls, member_ids, group_id: int) -> None:
        """Record group_id for each member, skipping ids already recorded."""
        cls.objects.bulk_create(
            [cls(member_id=member_id, group_ref=group_id) for member_id in member_ids],
            ignore_conflicts=True,
        )
