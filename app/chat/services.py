"""
Chat system service layer.

This module provides the business logic for group chat, encapsulating all
operations on groups, memberships, messages and unseen state.

Services:
    MembershipService: Group lifecycle and membership (create, add, remove,
        leave, rename, delete, promote, demote)
    MessageService: Message operations (post, list, delete)
    UnseenService: Unseen tracking (mark seen, unseen counts)
    DirectoryService: A member's group listing (groups_for, summary_for)

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures return ServiceResult.failure() with an error type
      from core.exceptions (ValidationError, NotFoundError,
      PermissionDeniedError, ConflictError)
    - Unexpected failures raise exceptions
    - Every mutation of a group locks the group row for the length of its
      transaction, so concurrent changes to one group run one at a time

Usage:
    from chat.content import TextContent
    from chat.services import MembershipService, MessageService, UnseenService

    result = MembershipService.create_group(
        creator=alice,
        name="Reading circle",
        initial_members=[bob, carol],
    )
    group = result.data

    result = MessageService.post_message(group.id, alice, TextContent("hi"))

    UnseenService.mark_seen(result.data.id, bob)
    UnseenService.unseen_count(group.id, carol.id).data  # 1
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model
from django.db.models import Count
from django.utils import timezone

from core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from core.services import BaseService, ServiceResult

from chat.constants import GROUP_CONFIG, MESSAGE_CONFIG
from chat.content import FileContent, TextContent
from chat.models import (
    ChatGroup,
    DirectoryEntry,
    GroupMembership,
    Message,
    MessageKind,
    MessageReceipt,
)

if TYPE_CHECKING:
    from datetime import datetime

    from django.db.models import QuerySet

    from authentication.models import User
    from chat.content import MessageContent

logger = logging.getLogger(__name__)


def _lock_group(group_id: int) -> ChatGroup | None:
    """
    Fetch a group and lock its row until the surrounding transaction ends.

    Must be called inside BaseService.atomic().
    """
    return ChatGroup.objects.select_for_update().filter(id=group_id).first()


def _group_not_found(group_id: int) -> ServiceResult:
    return ServiceResult.failure(
        f"Group {group_id} not found",
        error_code="GROUP_NOT_FOUND",
        error_type=NotFoundError,
    )


def _validate_name(name: str | None) -> tuple[str, ServiceResult | None]:
    """Strip a group name and check it; returns (name, failure or None)."""
    name = name.strip() if name else ""
    if not name:
        return name, ServiceResult.failure(
            "Group name is required",
            error_code="NAME_REQUIRED",
        )
    if len(name) > GROUP_CONFIG.MAX_NAME_LENGTH:
        return name, ServiceResult.failure(
            f"Group name cannot exceed {GROUP_CONFIG.MAX_NAME_LENGTH} characters",
            error_code="NAME_TOO_LONG",
        )
    return name, None


class MembershipService(BaseService):
    """
    Service for group lifecycle and membership operations.

    Invariants kept by every method:
        - Admins are always members (admin is a flag on the membership)
        - A group that exists has at least one admin

    Methods:
        create_group: Create a group with the creator as its only admin
        add_member: Add a member to a group
        remove_member: Admin removes a member
        leave_group: Member leaves a group
        rename_group: Change the group name
        delete_group: Admin deletes the group and its messages
        promote_admin: Admin makes a member an admin
        demote_admin: Admin takes admin rights from a member
    """

    @classmethod
    def create_group(
        cls,
        creator: User,
        name: str,
        initial_members: list[User] | None = None,
    ) -> ServiceResult[ChatGroup]:
        """
        Create a new chat group.

        The creator becomes the only admin. Initial members are added as
        regular members; duplicates and the creator are ignored. Every
        resulting member gets a directory entry for the new group in the
        same transaction.

        Args:
            creator: User creating the group (becomes admin)
            name: Required group name (cannot be blank)
            initial_members: Optional list of users to add as members

        Returns:
            ServiceResult with the new ChatGroup

        Error codes:
            NAME_REQUIRED: Group name cannot be empty
            NAME_TOO_LONG: Group name exceeds the length limit
        """
        name, failure = _validate_name(name)
        if failure is not None:
            return failure

        members = [creator]
        seen_ids = {creator.id}
        for member in initial_members or []:
            if member.id not in seen_ids:
                seen_ids.add(member.id)
                members.append(member)

        with cls.atomic():
            group = ChatGroup.objects.create(name=name, created_by=creator)
            GroupMembership.objects.bulk_create(
                [
                    GroupMembership(
                        group=group,
                        member=member,
                        is_admin=member.id == creator.id,
                    )
                    for member in members
                ]
            )
            DirectoryEntry.record([member.id for member in members], group.id)

        cls.get_logger().info(
            f"Created group {group.id} named '{name}' "
            f"with {len(members)} members by user {creator.id}"
        )

        return ServiceResult.success(group)

    @classmethod
    def add_member(
        cls,
        group_id: int,
        member: User,
    ) -> ServiceResult[ChatGroup]:
        """
        Add a user to a group as a regular member.

        The group is also recorded in the member's directory.

        Returns:
            ServiceResult with the updated ChatGroup

        Error codes:
            GROUP_NOT_FOUND: No group with this id
            ALREADY_MEMBER: User is already in the group
        """
        with cls.atomic():
            group = _lock_group(group_id)
            if group is None:
                return _group_not_found(group_id)

            if group.is_member(member.id):
                return ServiceResult.failure(
                    "Member already in group",
                    error_code="ALREADY_MEMBER",
                    error_type=ConflictError,
                )

            GroupMembership.objects.create(group=group, member=member)
            DirectoryEntry.record([member.id], group.id)
            group.save(update_fields=["updated_at"])

        cls.get_logger().info(f"Added user {member.id} to group {group.id}")

        return ServiceResult.success(group)

    @classmethod
    def remove_member(
        cls,
        group_id: int,
        acting_admin: User,
        member: User,
    ) -> ServiceResult[ChatGroup]:
        """
        Remove a member from a group.

        Only admins may remove members. Removing an admin also drops their
        admin rights, unless they are the only admin. The removed member's
        directory entry is kept.

        Args:
            group_id: Group to remove from
            acting_admin: User performing the removal
            member: User to remove

        Returns:
            ServiceResult with the updated ChatGroup

        Error codes:
            GROUP_NOT_FOUND: No group with this id
            NOT_ADMIN: Acting user is not an admin of the group
            NOT_MEMBER: Target user is not in the group
            LAST_ADMIN: Target is the only admin
        """
        with cls.atomic():
            group = _lock_group(group_id)
            if group is None:
                return _group_not_found(group_id)

            if not group.is_admin(acting_admin.id):
                cls.get_logger().warning(
                    f"User {acting_admin.id} tried to remove user {member.id} "
                    f"from group {group.id} without admin rights"
                )
                return ServiceResult.failure(
                    "Only group admins can remove members",
                    error_code="NOT_ADMIN",
                    error_type=PermissionDeniedError,
                )

            membership = group.memberships.filter(member=member).first()
            if membership is None:
                return ServiceResult.failure(
                    "User is not a member of this group",
                    error_code="NOT_MEMBER",
                    error_type=NotFoundError,
                )

            if membership.is_admin and cls._admin_count(group) == 1:
                return cls._last_admin_failure()

            membership.delete()
            group.save(update_fields=["updated_at"])

        cls.get_logger().info(
            f"Removed user {member.id} from group {group.id} by user {acting_admin.id}"
        )

        return ServiceResult.success(group)

    @classmethod
    def leave_group(
        cls,
        group_id: int,
        member: User,
    ) -> ServiceResult[ChatGroup]:
        """
        Leave a group.

        An admin who leaves loses admin rights with the membership. The only
        admin cannot leave until another member has been promoted; in that
        case nothing changes. The directory entry is kept.

        Returns:
            ServiceResult with the updated ChatGroup

        Error codes:
            GROUP_NOT_FOUND: No group with this id
            NOT_MEMBER: User is not in the group
            LAST_ADMIN: User is the only admin
        """
        with cls.atomic():
            group = _lock_group(group_id)
            if group is None:
                return _group_not_found(group_id)

            membership = group.memberships.filter(member=member).first()
            if membership is None:
                return ServiceResult.failure(
                    "You are not a member of this group",
                    error_code="NOT_MEMBER",
                    error_type=NotFoundError,
                )

            if membership.is_admin and cls._admin_count(group) == 1:
                return cls._last_admin_failure()

            membership.delete()
            group.save(update_fields=["updated_at"])

        cls.get_logger().info(f"User {member.id} left group {group.id}")

        return ServiceResult.success(group)

    @classmethod
    def rename_group(
        cls,
        group_id: int,
        new_name: str,
    ) -> ServiceResult[ChatGroup]:
        """
        Rename a group.

        Returns:
            ServiceResult with the updated ChatGroup

        Error codes:
            GROUP_NOT_FOUND: No group with this id
            NAME_REQUIRED: New name is blank
            NAME_TOO_LONG: New name exceeds the length limit
        """
        with cls.atomic():
            group = _lock_group(group_id)
            if group is None:
                return _group_not_found(group_id)

            new_name, failure = _validate_name(new_name)
            if failure is not None:
                return failure

            old_name = group.name
            group.name = new_name
            group.save(update_fields=["name", "updated_at"])

        cls.get_logger().info(
            f"Renamed group {group.id} from '{old_name}' to '{new_name}'"
        )

        return ServiceResult.success(group)

    @classmethod
    def delete_group(
        cls,
        group_id: int,
        acting_admin: User,
    ) -> ServiceResult[None]:
        """
        Delete a group with all of its messages.

        Messages, receipts and memberships are removed in one transaction
        with the group. Members' directory entries keep the old id.

        Returns:
            ServiceResult with None on success

        Error codes:
            GROUP_NOT_FOUND: No group with this id
            NOT_ADMIN: Acting user is not an admin of the group
        """
        with cls.atomic():
            group = _lock_group(group_id)
            if group is None:
                return _group_not_found(group_id)

            if not group.is_admin(acting_admin.id):
                cls.get_logger().warning(
                    f"User {acting_admin.id} tried to delete group {group.id} "
                    f"without admin rights"
                )
                return ServiceResult.failure(
                    "Only group admins can delete the group",
                    error_code="NOT_ADMIN",
                    error_type=PermissionDeniedError,
                )

            message_count = group.messages.count()
            group.messages.all().delete()
            group.delete()

        cls.get_logger().info(
            f"Deleted group {group_id} and {message_count} messages "
            f"by user {acting_admin.id}"
        )

        return ServiceResult.success(None)

    @classmethod
    def promote_admin(
        cls,
        group_id: int,
        acting_admin: User,
        member: User,
    ) -> ServiceResult[ChatGroup]:
        """
        Give a member admin rights.

        This is how a sole admin makes way to leave the group.

        Error codes:
            GROUP_NOT_FOUND: No group with this id
            NOT_ADMIN: Acting user is not an admin of the group
            NOT_MEMBER: Target user is not in the group
            ALREADY_ADMIN: Target is already an admin
        """
        with cls.atomic():
            group = _lock_group(group_id)
            if group is None:
                return _group_not_found(group_id)

            failure = cls._require_admin(group, acting_admin, "promote members")
            if failure is not None:
                return failure

            membership = group.memberships.filter(member=member).first()
            if membership is None:
                return ServiceResult.failure(
                    "User is not a member of this group",
                    error_code="NOT_MEMBER",
                    error_type=NotFoundError,
                )

            if membership.is_admin:
                return ServiceResult.failure(
                    "Member is already an admin",
                    error_code="ALREADY_ADMIN",
                    error_type=ConflictError,
                )

            membership.is_admin = True
            membership.save(update_fields=["is_admin", "updated_at"])

        cls.get_logger().info(
            f"Promoted user {member.id} to admin of group {group.id} "
            f"by user {acting_admin.id}"
        )

        return ServiceResult.success(group)

    @classmethod
    def demote_admin(
        cls,
        group_id: int,
        acting_admin: User,
        member: User,
    ) -> ServiceResult[ChatGroup]:
        """
        Take admin rights from a member, who stays in the group.

        Admins may demote themselves as long as another admin remains.

        Error codes:
            GROUP_NOT_FOUND: No group with this id
            NOT_ADMIN: Acting user is not an admin of the group
            NOT_MEMBER: Target user is not in the group
            TARGET_NOT_ADMIN: Target is not an admin
            LAST_ADMIN: Target is the only admin
        """
        with cls.atomic():
            group = _lock_group(group_id)
            if group is None:
                return _group_not_found(group_id)

            failure = cls._require_admin(group, acting_admin, "demote admins")
            if failure is not None:
                return failure

            membership = group.memberships.filter(member=member).first()
            if membership is None:
                return ServiceResult.failure(
                    "User is not a member of this group",
                    error_code="NOT_MEMBER",
                    error_type=NotFoundError,
                )

            if not membership.is_admin:
                return ServiceResult.failure(
                    "Member is not an admin",
                    error_code="TARGET_NOT_ADMIN",
                    error_type=ConflictError,
                )

            if cls._admin_count(group) == 1:
                return cls._last_admin_failure()

            membership.is_admin = False
            membership.save(update_fields=["is_admin", "updated_at"])

        cls.get_logger().info(
            f"Demoted user {member.id} in group {group.id} by user {acting_admin.id}"
        )

        return ServiceResult.success(group)

    @classmethod
    def _admin_count(cls, group: ChatGroup) -> int:
        return group.memberships.filter(is_admin=True).count()

    @classmethod
    def _require_admin(
        cls, group: ChatGroup, user: User, action: str
    ) -> ServiceResult | None:
        if group.is_admin(user.id):
            return None
        cls.get_logger().warning(
            f"User {user.id} tried to {action} in group {group.id} without admin rights"
        )
        return ServiceResult.failure(
            f"Only group admins can {action}",
            error_code="NOT_ADMIN",
            error_type=PermissionDeniedError,
        )

    @classmethod
    def _last_admin_failure(cls) -> ServiceResult:
        return ServiceResult.failure(
            "The last admin must promote a successor before leaving",
            error_code="LAST_ADMIN",
            error_type=ConflictError,
        )


class MessageService(BaseService):
    """
    Service for message operations.

    Methods:
        post_message: Post a text or file message to a group
        list_messages: Messages of a group in the order they were stored
        delete_message: Delete a message
    """

    @classmethod
    def post_message(
        cls,
        group_id: int,
        sender: User,
        content: MessageContent,
    ) -> ServiceResult[Message]:
        """
        Post a message to a group.

        Every current member except the sender gets an unseen receipt. The
        recipient list is read under the group lock, so members added or
        removed later do not change who must see this message. The group's
        last_message moves to the new message. A failed post writes nothing.

        Args:
            group_id: Target group
            sender: Member posting the message
            content: TextContent or FileContent

        Returns:
            ServiceResult with the new Message

        Error codes:
            GROUP_NOT_FOUND: No group with this id
            NOT_MEMBER: Sender is not in the group
            EMPTY_BODY: Text body is blank
            TEXT_TOO_LONG: Text body exceeds the length limit
            EMPTY_FILE: File has no payload
            FILE_NAME_REQUIRED: File has no name
            FILE_TOO_LARGE: File payload exceeds CHAT_MAX_FILE_SIZE_MB
            INVALID_CONTENT: Content is neither text nor file
        """
        with cls.atomic():
            group = _lock_group(group_id)
            if group is None:
                return _group_not_found(group_id)

            if not group.is_member(sender.id):
                return ServiceResult.failure(
                    "You are not a member of this group",
                    error_code="NOT_MEMBER",
                    error_type=PermissionDeniedError,
                )

            fields, failure = cls._content_fields(content)
            if failure is not None:
                return failure

            message = Message.objects.create(group=group, sender=sender, **fields)

            recipient_ids = group.memberships.exclude(member_id=sender.id).values_list(
                "member_id", flat=True
            )
            MessageReceipt.objects.bulk_create(
                [
                    MessageReceipt(message=message, member_id=member_id)
                    for member_id in recipient_ids
                ]
            )

            group.last_message = message
            group.save(update_fields=["last_message", "updated_at"])

        cls.get_logger().debug(
            f"User {sender.id} posted {message.kind} message {message.id} "
            f"to group {group.id}"
        )

        return ServiceResult.success(message)

    @classmethod
    def list_messages(cls, group_id: int) -> ServiceResult[QuerySet[Message]]:
        """
        List a group's messages in store order.

        Senders and receipts are loaded with the messages so that each one can
        be rendered with its sender projection and unseen/seen sets.

        Error codes:
            GROUP_NOT_FOUND: No group with this id
        """
        if not ChatGroup.objects.filter(id=group_id).exists():
            return _group_not_found(group_id)

        messages = (
            Message.objects.filter(group_id=group_id)
            .select_related("sender")
            .prefetch_related("receipts")
            .order_by("created_at", "id")
        )
        return ServiceResult.success(messages)

    @classmethod
    def delete_message(cls, message_id: int) -> ServiceResult[None]:
        """
        Delete a message and its receipts.

        Who may delete is decided by the caller. If the message was the
        group's last message, last_message moves to the newest remaining one.

        Error codes:
            MESSAGE_NOT_FOUND: No message with this id
        """
        group_id = (
            Message.objects.filter(id=message_id)
            .values_list("group_id", flat=True)
            .first()
        )
        if group_id is None:
            return cls._message_not_found(message_id)

        with cls.atomic():
            group = _lock_group(group_id)
            message = Message.objects.filter(id=message_id).first()
            if group is None or message is None:
                return cls._message_not_found(message_id)

            was_last = group.last_message_id == message.id
            message.delete()

            if was_last:
                group.last_message = group.messages.order_by(
                    "-created_at", "-id"
                ).first()
                group.save(update_fields=["last_message", "updated_at"])

        cls.get_logger().info(f"Deleted message {message_id} from group {group_id}")

        return ServiceResult.success(None)

    @classmethod
    def _message_not_found(cls, message_id: int) -> ServiceResult:
        return ServiceResult.failure(
            f"Message {message_id} not found",
            error_code="MESSAGE_NOT_FOUND",
            error_type=NotFoundError,
        )

    @classmethod
    def _content_fields(
        cls, content: MessageContent
    ) -> tuple[dict, ServiceResult | None]:
        """
        Validate content and map it to Message columns.

        Returns:
            (fields, None) when valid, ({}, failure) otherwise
        """
        if isinstance(content, TextContent):
            body = content.body.strip() if content.body else ""
            if not body:
                return {}, ServiceResult.failure(
                    "Message body cannot be empty",
                    error_code="EMPTY_BODY",
                    error_type=ValidationError,
                )
            if len(body) > MESSAGE_CONFIG.MAX_TEXT_LENGTH:
                return {}, ServiceResult.failure(
                    f"Message body cannot exceed {MESSAGE_CONFIG.MAX_TEXT_LENGTH} characters",
                    error_code="TEXT_TOO_LONG",
                    error_type=ValidationError,
                )
            return {"kind": MessageKind.TEXT, "body": body}, None

        if isinstance(content, FileContent):
            if not content.payload:
                return {}, ServiceResult.failure(
                    "File message requires a payload",
                    error_code="EMPTY_FILE",
                    error_type=ValidationError,
                )
            file_name = content.file_name.strip() if content.file_name else ""
            if not file_name:
                return {}, ServiceResult.failure(
                    "File message requires a file name",
                    error_code="FILE_NAME_REQUIRED",
                    error_type=ValidationError,
                )
            max_bytes = MESSAGE_CONFIG.max_file_bytes()
            if content.size > max_bytes:
                return {}, ServiceResult.failure(
                    f"File size must be less than {max_bytes // (1024 * 1024)}MB",
                    error_code="FILE_TOO_LARGE",
                    error_type=ValidationError,
                )
            return {
                "kind": MessageKind.FILE,
                "file_data": bytes(content.payload),
                "file_content_type": content.content_type
                or MESSAGE_CONFIG.DEFAULT_CONTENT_TYPE,
                "file_name": file_name[: MESSAGE_CONFIG.MAX_FILE_NAME_LENGTH],
                "file_size": content.size,
            }, None

        return {}, ServiceResult.failure(
            "Message content must be text or a file",
            error_code="INVALID_CONTENT",
            error_type=ValidationError,
        )


class UnseenService(BaseService):
    """
    Service for unseen-message tracking.

    A message is unseen by a member while their receipt has no seen_at.
    Counts are computed from receipts on every call; there is no cached
    counter to drift out of sync.

    Methods:
        mark_seen: Mark one message seen by a member
        mark_messages_seen: Mark a batch of messages seen by a member
        mark_group_seen: Mark every message in a group seen by a member
        unseen_count: Number of unseen messages in a group for a member
    """

    @classmethod
    def mark_seen(
        cls,
        message_id: int,
        member: User,
        seen_at: datetime | None = None,
    ) -> ServiceResult[Message]:
        """
        Mark a message as seen by a member.

        Idempotent: repeating the call, or calling it for a member who never
        had to see the message (such as its sender), changes nothing and
        still succeeds.

        Args:
            message_id: Message that was seen
            member: Member who saw it
            seen_at: When it was seen (defaults to now)

        Returns:
            ServiceResult with the Message

        Error codes:
            MESSAGE_NOT_FOUND: No message with this id
        """
        message = Message.objects.filter(id=message_id).first()
        if message is None:
            return MessageService._message_not_found(message_id)

        updated = MessageReceipt.objects.filter(
            message=message,
            member=member,
            seen_at__isnull=True,
        ).update(seen_at=seen_at or timezone.now())

        if updated:
            cls.get_logger().debug(f"User {member.id} saw message {message.id}")

        return ServiceResult.success(message)

    @classmethod
    def mark_messages_seen(
        cls,
        message_ids: list[int],
        member: User,
        seen_at: datetime | None = None,
    ) -> ServiceResult[int]:
        """
        Mark a batch of messages seen by a member, such as one listed page.

        Ids that do not exist or have no receipt for the member are ignored.

        Returns:
            ServiceResult with the number of messages that changed state
        """
        if not message_ids:
            return ServiceResult.success(0)

        updated = MessageReceipt.objects.filter(
            message_id__in=message_ids,
            member=member,
            seen_at__isnull=True,
        ).update(seen_at=seen_at or timezone.now())

        return ServiceResult.success(updated)

    @classmethod
    def mark_group_seen(
        cls,
        group_id: int,
        member: User,
        seen_at: datetime | None = None,
    ) -> ServiceResult[int]:
        """
        Mark all of a member's unseen messages in a group as seen.

        Returns:
            ServiceResult with the number of messages that changed state

        Error codes:
            GROUP_NOT_FOUND: No group with this id
        """
        if not ChatGroup.objects.filter(id=group_id).exists():
            return _group_not_found(group_id)

        updated = MessageReceipt.objects.filter(
            message__group_id=group_id,
            member=member,
            seen_at__isnull=True,
        ).update(seen_at=seen_at or timezone.now())

        cls.get_logger().debug(
            f"User {member.id} marked {updated} messages seen in group {group_id}"
        )

        return ServiceResult.success(updated)

    @classmethod
    def unseen_count(cls, group_id: int, member_id: int) -> ServiceResult[int]:
        """
        Count messages in a group that the member has not seen.

        Error codes:
            GROUP_NOT_FOUND: No group with this id
        """
        if not ChatGroup.objects.filter(id=group_id).exists():
            return _group_not_found(group_id)

        count = MessageReceipt.objects.filter(
            message__group_id=group_id,
            member_id=member_id,
            seen_at__isnull=True,
        ).count()
        return ServiceResult.success(count)


@dataclass
class GroupSummary:
    """A group as listed for one member, with that member's unseen count."""

    group: ChatGroup
    unseen_count: int


class DirectoryService(BaseService):
    """
    Service for a member's group listing.

    The listing is built from the member's directory entries, which are
    never pruned. Entries whose group no longer exists are skipped when
    reading and stay stored.

    Methods:
        groups_for: Existing groups recorded for a member
        summary_for: groups_for plus each group's unseen count
    """

    @classmethod
    def groups_for(cls, member_id: int) -> ServiceResult[list[ChatGroup]]:
        """
        Resolve a member's directory entries to existing groups.

        Groups are returned in the order they were recorded.

        Error codes:
            MEMBER_NOT_FOUND: No user with this id
        """
        if not get_user_model().objects.filter(id=member_id).exists():
            return ServiceResult.failure(
                f"Member {member_id} not found",
                error_code="MEMBER_NOT_FOUND",
                error_type=NotFoundError,
            )

        group_refs = list(
            DirectoryEntry.objects.filter(member_id=member_id)
            .order_by("id")
            .values_list("group_ref", flat=True)
        )
        groups = (
            ChatGroup.objects.select_related("last_message")
            .prefetch_related("memberships")
            .in_bulk(group_refs)
        )
        resolved = [groups[ref] for ref in group_refs if ref in groups]

        skipped = len(group_refs) - len(resolved)
        if skipped:
            cls.get_logger().debug(
                f"Skipped {skipped} stale directory entries for user {member_id}"
            )

        return ServiceResult.success(resolved)

    @classmethod
    def summary_for(cls, member_id: int) -> ServiceResult[list[GroupSummary]]:
        """
        Summarize each group in a member's directory.

        Unseen counts for all groups come from a single grouped query.

        Error codes:
            MEMBER_NOT_FOUND: No user with this id
        """
        result = cls.groups_for(member_id)
        if not result.success:
            return result

        groups = result.data
        counts = dict(
            MessageReceipt.objects.filter(
                member_id=member_id,
                seen_at__isnull=True,
                message__group_id__in=[group.id for group in groups],
            )
            .order_by()
            .values("message__group_id")
            .annotate(unseen=Count("id"))
            .values_list("message__group_id", "unseen")
        )

        return ServiceResult.success(
            [GroupSummary(group=group, unseen_count=counts.get(group.id, 0)) for group in groups]
        )
