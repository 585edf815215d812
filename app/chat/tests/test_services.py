"""
Tests for chat service layer business logic.

This module tests all chat services:
- MembershipService: Group lifecycle and membership
- MessageService: Posting, listing and deleting messages
- UnseenService: Seen marks and unseen counts
- DirectoryService: A member's group listing

Test Organization:
    - Each service method has its own test class
    - Each test validates ONE specific behavior
    - Tests use descriptive names following: test_<scenario>_<expected_outcome>

Testing Philosophy:
    Tests focus on observable behavior, not implementation details:
    - ServiceResult success/failure states and error kinds
    - Database state changes
    - Error codes for specific failure modes
"""

from datetime import datetime, timezone as dt_timezone
from unittest.mock import Mock, patch

import pytest
from django.db import DatabaseError
from django.test import override_settings
from freezegun import freeze_time

from authentication.tests.factories import UserFactory
from chat.content import FileContent, TextContent
from chat.models import (
    ChatGroup,
    DirectoryEntry,
    GroupMembership,
    Message,
    MessageKind,
    MessageReceipt,
)
from chat.services import (
    DirectoryService,
    MembershipService,
    MessageService,
    UnseenService,
    _lock_group,
)
from core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

MISSING_ID = 999_999


def _text(body="hi"):
    return TextContent(body=body)


def _reload(group):
    return ChatGroup.objects.prefetch_related("memberships").get(pk=group.pk)


# =============================================================================
# TestMembershipServiceCreateGroup
# =============================================================================


class TestMembershipServiceCreateGroup:
    """
    Tests for MembershipService.create_group().

    Verifies:
    - Creator becomes the only admin
    - Initial members are deduplicated
    - Directory entries are written for every member
    - Name validation
    """

    def test_creates_group_with_creator_as_admin(self, db):
        """
        The creator is a member and the only admin.

        Why it matters: A group must start with exactly one admin.
        """
        alice = UserFactory()
        bob = UserFactory()

        result = MembershipService.create_group(alice, "Team", [bob])

        assert result.success is True
        group = _reload(result.data)
        assert group.name == "Team"
        assert group.member_ids() == [alice.id, bob.id]
        assert group.admin_ids() == [alice.id]
        assert group.created_by == alice

    def test_deduplicates_members_and_creator(self, db):
        """Listing the creator or a member twice does not add duplicates."""
        alice = UserFactory()
        bob = UserFactory()

        result = MembershipService.create_group(alice, "Team", [bob, alice, bob])

        assert _reload(result.data).member_ids() == [alice.id, bob.id]

    def test_records_group_in_every_members_directory(self, db):
        """
        Every resulting member gets one directory entry for the group.

        Why it matters: Members find their groups through the directory.
        """
        alice = UserFactory()
        bob = UserFactory()

        group = MembershipService.create_group(alice, "Team", [bob]).data

        for user in (alice, bob):
            assert (
                DirectoryEntry.objects.filter(member=user, group_ref=group.id).count() == 1
            )

    def test_strips_name(self, db):
        result = MembershipService.create_group(UserFactory(), "  Team  ")

        assert result.data.name == "Team"

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_fails_for_blank_name(self, db, name):
        """
        A blank name is a validation failure and nothing is written.

        Why it matters: Group names are required.
        """
        result = MembershipService.create_group(UserFactory(), name)

        assert result.success is False
        assert result.error_type is ValidationError
        assert result.error_code == "NAME_REQUIRED"
        assert ChatGroup.objects.count() == 0
        assert DirectoryEntry.objects.count() == 0

    def test_fails_for_too_long_name(self, db):
        result = MembershipService.create_group(UserFactory(), "x" * 101)

        assert result.success is False
        assert result.error_code == "NAME_TOO_LONG"


# =============================================================================
# TestMembershipServiceAddMember
# =============================================================================


class TestMembershipServiceAddMember:
    """Tests for MembershipService.add_member()."""

    def test_adds_regular_member(self, group, outsider_user):
        """New members join without admin rights."""
        result = MembershipService.add_member(group.id, outsider_user)

        assert result.success is True
        group = _reload(group)
        assert outsider_user.id in group.member_ids()
        assert outsider_user.id not in group.admin_ids()

    def test_records_directory_entry(self, group, outsider_user):
        MembershipService.add_member(group.id, outsider_user)

        assert DirectoryEntry.objects.filter(
            member=outsider_user, group_ref=group.id
        ).exists()

    def test_fails_for_existing_member(self, group, member_user):
        """
        Adding a member twice is a conflict.

        Why it matters: Member sets have no duplicates.
        """
        result = MembershipService.add_member(group.id, member_user)

        assert result.success is False
        assert result.error_type is ConflictError
        assert result.error_code == "ALREADY_MEMBER"

    def test_fails_for_missing_group(self, db, outsider_user):
        result = MembershipService.add_member(MISSING_ID, outsider_user)

        assert result.success is False
        assert result.error_type is NotFoundError
        assert result.error_code == "GROUP_NOT_FOUND"

    def test_readding_removed_member_keeps_single_directory_entry(
        self, group, admin_user, member_user
    ):
        """A member removed and added back still has one directory entry."""
        MembershipService.remove_member(group.id, admin_user, member_user)

        result = MembershipService.add_member(group.id, member_user)

        assert result.success is True
        assert (
            DirectoryEntry.objects.filter(member=member_user, group_ref=group.id).count()
            == 1
        )


# =============================================================================
# TestMembershipServiceRemoveMember
# =============================================================================


class TestMembershipServiceRemoveMember:
    """
    Tests for MembershipService.remove_member().

    Verifies:
    - Admin authority
    - Target must be a member
    - Last admin cannot be removed
    - Directory entry is kept
    """

    def test_admin_removes_member(self, group, admin_user, member_user):
        result = MembershipService.remove_member(group.id, admin_user, member_user)

        assert result.success is True
        assert member_user.id not in _reload(group).member_ids()

    def test_removed_member_keeps_directory_entry(self, group, admin_user, member_user):
        """
        Removal leaves the member's directory entry in place.

        Why it matters: Directory entries are never pruned.
        """
        MembershipService.remove_member(group.id, admin_user, member_user)

        assert DirectoryEntry.objects.filter(
            member=member_user, group_ref=group.id
        ).exists()

    def test_fails_when_actor_not_admin(self, group, member_user, other_user):
        """
        Only admins may remove members.

        Why it matters: Regular members must not be able to kick others.
        """
        result = MembershipService.remove_member(group.id, member_user, other_user)

        assert result.success is False
        assert result.error_type is PermissionDeniedError
        assert result.error_code == "NOT_ADMIN"
        assert other_user.id in _reload(group).member_ids()

    def test_fails_when_target_not_member(self, group, admin_user, outsider_user):
        result = MembershipService.remove_member(group.id, admin_user, outsider_user)

        assert result.success is False
        assert result.error_type is NotFoundError
        assert result.error_code == "NOT_MEMBER"

    def test_fails_when_removing_last_admin(self, group, admin_user):
        """
        The sole admin cannot be removed.

        Why it matters: A group must always have at least one admin.
        """
        result = MembershipService.remove_member(group.id, admin_user, admin_user)

        assert result.success is False
        assert result.error_type is ConflictError
        assert result.error_code == "LAST_ADMIN"
        assert _reload(group).admin_ids() == [admin_user.id]

    def test_removing_one_of_two_admins_drops_admin_flag(
        self, group, admin_user, member_user
    ):
        """Removing an admin takes their admin rights with the membership."""
        MembershipService.promote_admin(group.id, admin_user, member_user)

        result = MembershipService.remove_member(group.id, admin_user, member_user)

        assert result.success is True
        group = _reload(group)
        assert group.admin_ids() == [admin_user.id]
        assert not GroupMembership.objects.filter(group=group, member=member_user).exists()

    def test_fails_for_missing_group(self, db, admin_user, member_user):
        result = MembershipService.remove_member(MISSING_ID, admin_user, member_user)

        assert result.error_type is NotFoundError


# =============================================================================
# TestMembershipServiceLeaveGroup
# =============================================================================


class TestMembershipServiceLeaveGroup:
    """Tests for MembershipService.leave_group()."""

    def test_member_leaves(self, group, member_user):
        result = MembershipService.leave_group(group.id, member_user)

        assert result.success is True
        assert member_user.id not in _reload(group).member_ids()
        assert DirectoryEntry.objects.filter(
            member=member_user, group_ref=group.id
        ).exists()

    def test_sole_admin_cannot_leave(self, group, admin_user):
        """
        The sole admin leaving is a conflict and nothing changes.

        Why it matters: Leaving would leave the group without an admin.
        """
        before = _reload(group).member_ids()

        result = MembershipService.leave_group(group.id, admin_user)

        assert result.success is False
        assert result.error_type is ConflictError
        assert result.error_code == "LAST_ADMIN"
        assert "promote" in result.error
        assert _reload(group).member_ids() == before

    def test_admin_leaves_after_promoting_successor(self, group, admin_user, member_user):
        """Once another admin exists, the former sole admin can leave."""
        MembershipService.promote_admin(group.id, admin_user, member_user)

        result = MembershipService.leave_group(group.id, admin_user)

        assert result.success is True
        group = _reload(group)
        assert admin_user.id not in group.member_ids()
        assert group.admin_ids() == [member_user.id]

    def test_fails_for_non_member(self, group, outsider_user):
        result = MembershipService.leave_group(group.id, outsider_user)

        assert result.error_type is NotFoundError
        assert result.error_code == "NOT_MEMBER"

    def test_fails_for_missing_group(self, db, member_user):
        result = MembershipService.leave_group(MISSING_ID, member_user)

        assert result.error_code == "GROUP_NOT_FOUND"


# =============================================================================
# TestMembershipServiceRenameGroup
# =============================================================================


class TestMembershipServiceRenameGroup:
    """Tests for MembershipService.rename_group()."""

    def test_renames(self, group):
        result = MembershipService.rename_group(group.id, "New Name")

        assert result.success is True
        group.refresh_from_db()
        assert group.name == "New Name"

    def test_fails_for_blank_name(self, group):
        result = MembershipService.rename_group(group.id, "  ")

        assert result.error_type is ValidationError
        assert result.error_code == "NAME_REQUIRED"
        group.refresh_from_db()
        assert group.name == "Test Group"

    def test_fails_for_missing_group(self, db):
        result = MembershipService.rename_group(MISSING_ID, "Name")

        assert result.error_type is NotFoundError


# =============================================================================
# TestMembershipServiceDeleteGroup
# =============================================================================


class TestMembershipServiceDeleteGroup:
    """
    Tests for MembershipService.delete_group().

    Verifies:
    - Admin authority
    - Messages and receipts removed with the group
    - Directory entries left dangling
    """

    def test_admin_deletes_group_and_messages(self, group, admin_user, text_message):
        """
        Deleting a group removes all of its messages and receipts.

        Why it matters: No message may outlive its group.
        """
        result = MembershipService.delete_group(group.id, admin_user)

        assert result.success is True
        assert result.data is None
        assert not ChatGroup.objects.filter(id=group.id).exists()
        assert not Message.objects.filter(group_id=group.id).exists()
        assert not MessageReceipt.objects.filter(message_id=text_message.id).exists()

    def test_directory_entries_are_left_dangling(self, group, admin_user, member_user):
        MembershipService.delete_group(group.id, admin_user)

        assert DirectoryEntry.objects.filter(
            member=member_user, group_ref=group.id
        ).exists()

    def test_fails_when_actor_not_admin(self, group, member_user):
        result = MembershipService.delete_group(group.id, member_user)

        assert result.error_type is PermissionDeniedError
        assert result.error_code == "NOT_ADMIN"
        assert ChatGroup.objects.filter(id=group.id).exists()

    def test_fails_for_missing_group(self, db, admin_user):
        result = MembershipService.delete_group(MISSING_ID, admin_user)

        assert result.error_type is NotFoundError


# =============================================================================
# TestMembershipServiceAtomicity
# =============================================================================


class TestMembershipServiceAtomicity:
    """
    Tests that group mutations are all-or-nothing and serialized per group.

    Verifies:
    - A failing step rolls back everything written before it
    - Authority and last-admin checks read state after the group row is locked
    """

    def test_create_group_rolls_back_when_directory_write_fails(
        self, db, admin_user, member_user
    ):
        """
        No group or membership survives a failed directory write.

        Why it matters: A group without directory entries would be invisible
        to its own members.
        """
        groups_before = ChatGroup.objects.count()
        memberships_before = GroupMembership.objects.count()

        with patch(
            "chat.services.DirectoryEntry.record",
            side_effect=DatabaseError("directory unavailable"),
        ):
            with pytest.raises(DatabaseError):
                MembershipService.create_group(admin_user, "Doomed", [member_user])

        assert ChatGroup.objects.count() == groups_before
        assert GroupMembership.objects.count() == memberships_before
        assert not ChatGroup.objects.filter(name="Doomed").exists()

    def test_delete_group_keeps_messages_when_group_delete_fails(
        self, group, admin_user, text_message
    ):
        """
        Messages are only gone if the group is gone too.

        Why it matters: A group must never be left with its history half deleted.
        """
        with patch.object(ChatGroup, "delete", side_effect=DatabaseError("locked")):
            with pytest.raises(DatabaseError):
                MembershipService.delete_group(group.id, admin_user)

        assert ChatGroup.objects.filter(id=group.id).exists()
        assert Message.objects.filter(id=text_message.id).exists()
        assert MessageReceipt.objects.filter(message_id=text_message.id).exists()

    def test_leave_locks_group_row(self, group, member_user):
        with patch.object(
            ChatGroup.objects,
            "select_for_update",
            wraps=ChatGroup.objects.select_for_update,
        ) as select_for_update:
            result = MembershipService.leave_group(group.id, member_user)

        assert result.success is True
        select_for_update.assert_called_once()

    def test_last_admin_check_runs_under_group_lock(self, group, admin_user):
        """
        The admin count is read only after the group row is locked.

        Why it matters: Two admins leaving at once must not both pass the
        check against the same stale count.
        """
        tracker = Mock()
        with patch("chat.services._lock_group", wraps=_lock_group) as lock, patch.object(
            MembershipService, "_admin_count", wraps=MembershipService._admin_count
        ) as admin_count:
            tracker.attach_mock(lock, "lock")
            tracker.attach_mock(admin_count, "admin_count")

            result = MembershipService.leave_group(group.id, admin_user)

        assert result.error_code == "LAST_ADMIN"
        assert [name for name, _, _ in tracker.mock_calls] == ["lock", "admin_count"]

    def test_second_of_two_admins_cannot_leave(self, group, admin_user, member_user):
        """
        Of two admins leaving back to back, only the first succeeds.

        Why it matters: The group always keeps at least one admin.
        """
        MembershipService.promote_admin(group.id, admin_user, member_user)

        first = MembershipService.leave_group(group.id, admin_user)
        second = MembershipService.leave_group(group.id, member_user)

        assert first.success is True
        assert second.error_type is ConflictError
        assert second.error_code == "LAST_ADMIN"
        assert _reload(group).admin_ids() == [member_user.id]


# =============================================================================
# TestMembershipServiceAdminRoles
# =============================================================================


class TestMembershipServiceAdminRoles:
    """Tests for MembershipService.promote_admin() and demote_admin()."""

    def test_promote_member(self, group, admin_user, member_user):
        result = MembershipService.promote_admin(group.id, admin_user, member_user)

        assert result.success is True
        assert _reload(group).admin_ids() == [admin_user.id, member_user.id]

    def test_promote_fails_for_non_admin_actor(self, group, member_user, other_user):
        result = MembershipService.promote_admin(group.id, member_user, other_user)

        assert result.error_type is PermissionDeniedError
        assert result.error_code == "NOT_ADMIN"
        assert not _reload(group).is_admin(other_user.id)

    def test_demote_fails_for_non_admin_actor(
        self, group, admin_user, member_user, other_user
    ):
        """
        Plain members cannot take admin rights from anyone.

        Why it matters: Otherwise any member could strip admins down to one.
        """
        MembershipService.promote_admin(group.id, admin_user, member_user)

        result = MembershipService.demote_admin(group.id, other_user, member_user)

        assert result.error_type is PermissionDeniedError
        assert result.error_code == "NOT_ADMIN"
        assert _reload(group).admin_ids() == [admin_user.id, member_user.id]

    def test_promote_fails_for_non_member_target(self, group, admin_user, outsider_user):
        """Admins are always members, so outsiders cannot be promoted."""
        result = MembershipService.promote_admin(group.id, admin_user, outsider_user)

        assert result.error_type is NotFoundError
        assert result.error_code == "NOT_MEMBER"

    def test_promote_fails_for_existing_admin(self, group, admin_user):
        result = MembershipService.promote_admin(group.id, admin_user, admin_user)

        assert result.error_type is ConflictError
        assert result.error_code == "ALREADY_ADMIN"

    def test_demote_admin_keeps_membership(self, group, admin_user, member_user):
        MembershipService.promote_admin(group.id, admin_user, member_user)

        result = MembershipService.demote_admin(group.id, admin_user, member_user)

        assert result.success is True
        group = _reload(group)
        assert group.admin_ids() == [admin_user.id]
        assert member_user.id in group.member_ids()

    def test_demote_fails_for_last_admin(self, group, admin_user):
        result = MembershipService.demote_admin(group.id, admin_user, admin_user)

        assert result.error_type is ConflictError
        assert result.error_code == "LAST_ADMIN"

    def test_demote_fails_for_non_admin_target(self, group, admin_user, member_user):
        result = MembershipService.demote_admin(group.id, admin_user, member_user)

        assert result.error_type is ConflictError
        assert result.error_code == "TARGET_NOT_ADMIN"


# =============================================================================
# TestMessageServicePostMessage
# =============================================================================


class TestMessageServicePostMessage:
    """
    Tests for MessageService.post_message().

    Verifies:
    - Text and file messages
    - Unseen receipts for every member except the sender
    - last_message pointer
    - Validation failures persist nothing
    """

    def test_posts_text_message(self, group, admin_user):
        result = MessageService.post_message(group.id, admin_user, _text("hello"))

        assert result.success is True
        message = result.data
        assert message.kind == MessageKind.TEXT
        assert message.body == "hello"
        assert message.sender == admin_user

    def test_unseen_by_all_members_except_sender(
        self, group, admin_user, member_user, other_user
    ):
        """
        Every member but the sender starts with the message unseen.

        Why it matters: The sender never needs to see their own message.
        """
        message = MessageService.post_message(group.id, admin_user, _text()).data

        assert sorted(message.unseen_by_ids()) == sorted([member_user.id, other_user.id])
        assert message.seen_log() == []

    def test_sets_last_message(self, group, admin_user):
        first = MessageService.post_message(group.id, admin_user, _text("one")).data
        second = MessageService.post_message(group.id, admin_user, _text("two")).data

        group.refresh_from_db()
        assert group.last_message_id == second.id != first.id

    def test_unseen_set_is_a_snapshot(self, group, admin_user, member_user, outsider_user):
        """Members added later are not recipients of earlier messages."""
        message = MessageService.post_message(group.id, admin_user, _text()).data

        MembershipService.add_member(group.id, outsider_user)

        assert outsider_user.id not in Message.objects.get(pk=message.pk).unseen_by_ids()

    def test_posts_file_message(self, group, member_user):
        content = FileContent(
            payload=b"\x89PNG data", content_type="image/png", file_name="cat.png"
        )

        result = MessageService.post_message(group.id, member_user, content)

        assert result.success is True
        message = Message.objects.get(pk=result.data.pk)
        assert message.kind == MessageKind.FILE
        assert message.content == content
        assert message.file_size == len(b"\x89PNG data")

    def test_fails_for_non_member_sender(self, group, outsider_user):
        """
        Only members may post.

        Why it matters: Outsiders must not be able to write into a group.
        """
        result = MessageService.post_message(group.id, outsider_user, _text())

        assert result.success is False
        assert result.error_type is PermissionDeniedError
        assert result.error_code == "NOT_MEMBER"
        assert Message.objects.count() == 0

    def test_fails_for_missing_group(self, db, admin_user):
        result = MessageService.post_message(MISSING_ID, admin_user, _text())

        assert result.error_type is NotFoundError

    @pytest.mark.parametrize("body", ["", "   "])
    def test_fails_for_blank_text(self, group, admin_user, body):
        result = MessageService.post_message(group.id, admin_user, _text(body))

        assert result.error_type is ValidationError
        assert result.error_code == "EMPTY_BODY"

    def test_fails_for_too_long_text(self, group, admin_user):
        result = MessageService.post_message(group.id, admin_user, _text("x" * 10001))

        assert result.error_code == "TEXT_TOO_LONG"

    def test_fails_for_file_without_name(self, group, admin_user):
        content = FileContent(payload=b"data", content_type="text/plain", file_name="")

        result = MessageService.post_message(group.id, admin_user, content)

        assert result.error_code == "FILE_NAME_REQUIRED"

    @override_settings(CHAT_MAX_FILE_SIZE_MB=1)
    def test_fails_for_oversized_file(self, group, admin_user):
        content = FileContent(
            payload=b"x" * (1024 * 1024 + 1),
            content_type="application/octet-stream",
            file_name="big.bin",
        )

        result = MessageService.post_message(group.id, admin_user, content)

        assert result.error_type is ValidationError
        assert result.error_code == "FILE_TOO_LARGE"

    def test_fails_for_unknown_content(self, group, admin_user):
        result = MessageService.post_message(group.id, admin_user, "plain string")

        assert result.error_code == "INVALID_CONTENT"

    def test_empty_file_persists_nothing(self, group, admin_user, text_message):
        """
        A file with no payload fails and leaves the group untouched.

        Why it matters: A failed post must not change messages, receipts
        or the last message pointer.
        """
        messages_before = Message.objects.count()
        receipts_before = MessageReceipt.objects.count()

        result = MessageService.post_message(
            group.id,
            admin_user,
            FileContent(payload=b"", content_type="text/plain", file_name="empty.txt"),
        )

        assert result.success is False
        assert result.error_type is ValidationError
        assert result.error_code == "EMPTY_FILE"
        assert Message.objects.count() == messages_before
        assert MessageReceipt.objects.count() == receipts_before
        group.refresh_from_db()
        assert group.last_message_id == text_message.id


# =============================================================================
# TestMessageServiceListMessages
# =============================================================================


class TestMessageServiceListMessages:
    """Tests for MessageService.list_messages()."""

    def test_lists_in_store_order(self, group, admin_user, member_user):
        ids = [
            MessageService.post_message(group.id, sender, _text(f"m{i}")).data.id
            for i, sender in enumerate([admin_user, member_user, admin_user])
        ]

        result = MessageService.list_messages(group.id)

        assert result.success is True
        assert [m.id for m in result.data] == ids

    def test_only_lists_own_group(self, group, solo_group, admin_user):
        MessageService.post_message(solo_group.id, admin_user, _text("elsewhere"))

        assert list(MessageService.list_messages(group.id).data) == []

    def test_fails_for_missing_group(self, db):
        result = MessageService.list_messages(MISSING_ID)

        assert result.error_type is NotFoundError


# =============================================================================
# TestMessageServiceDeleteMessage
# =============================================================================


class TestMessageServiceDeleteMessage:
    """Tests for MessageService.delete_message()."""

    def test_deletes_message_and_receipts(self, text_message):
        result = MessageService.delete_message(text_message.id)

        assert result.success is True
        assert not Message.objects.filter(id=text_message.id).exists()
        assert not MessageReceipt.objects.filter(message_id=text_message.id).exists()

    def test_last_message_moves_to_previous(self, group, admin_user):
        """Deleting the newest message points last_message at the one before."""
        first = MessageService.post_message(group.id, admin_user, _text("one")).data
        second = MessageService.post_message(group.id, admin_user, _text("two")).data

        MessageService.delete_message(second.id)

        group.refresh_from_db()
        assert group.last_message_id == first.id

    def test_last_message_cleared_when_none_left(self, group, text_message):
        MessageService.delete_message(text_message.id)

        group.refresh_from_db()
        assert group.last_message_id is None

    def test_fails_for_missing_message(self, db):
        result = MessageService.delete_message(MISSING_ID)

        assert result.error_type is NotFoundError
        assert result.error_code == "MESSAGE_NOT_FOUND"


# =============================================================================
# TestUnseenService
# =============================================================================


class TestUnseenServiceMarkSeen:
    """
    Tests for UnseenService.mark_seen().

    Verifies:
    - Moving a member from unseen to the seen log
    - Idempotence
    - No-op for members without a receipt
    """

    @freeze_time("2024-01-01 12:00:00")
    def test_moves_member_to_seen_log(self, text_message, member_user, other_user):
        result = UnseenService.mark_seen(text_message.id, member_user)

        assert result.success is True
        message = Message.objects.get(pk=text_message.pk)
        assert message.unseen_by_ids() == [other_user.id]
        [entry] = message.seen_log()
        assert entry.member_id == member_user.id
        assert entry.seen_at == datetime(2024, 1, 1, 12, 0, tzinfo=dt_timezone.utc)

    def test_is_idempotent(self, text_message, member_user):
        """
        Marking twice keeps the first seen time.

        Why it matters: The seen log records when a member first saw a message.
        """
        first = datetime(2024, 1, 1, 9, 0, tzinfo=dt_timezone.utc)
        later = datetime(2024, 1, 2, 9, 0, tzinfo=dt_timezone.utc)

        UnseenService.mark_seen(text_message.id, member_user, seen_at=first)
        result = UnseenService.mark_seen(text_message.id, member_user, seen_at=later)

        assert result.success is True
        receipt = MessageReceipt.objects.get(message=text_message, member=member_user)
        assert receipt.seen_at == first

    def test_sender_mark_is_noop(self, text_message, admin_user):
        result = UnseenService.mark_seen(text_message.id, admin_user)

        assert result.success is True
        assert not MessageReceipt.objects.filter(
            message=text_message, member=admin_user
        ).exists()

    def test_fails_for_missing_message(self, db, member_user):
        result = UnseenService.mark_seen(MISSING_ID, member_user)

        assert result.error_type is NotFoundError


class TestUnseenServiceMarkMany:
    """Tests for UnseenService.mark_messages_seen() and mark_group_seen()."""

    def test_marks_only_given_messages(self, group, admin_user, member_user):
        first = MessageService.post_message(group.id, admin_user, _text("one")).data
        second = MessageService.post_message(group.id, admin_user, _text("two")).data

        result = UnseenService.mark_messages_seen([first.id], member_user)

        assert result.data == 1
        assert member_user.id not in Message.objects.get(pk=first.pk).unseen_by_ids()
        assert member_user.id in Message.objects.get(pk=second.pk).unseen_by_ids()

    def test_empty_batch_is_noop(self, db, member_user):
        assert UnseenService.mark_messages_seen([], member_user).data == 0

    def test_mark_group_seen_counts_changes(self, group, admin_user, member_user):
        for body in ("one", "two", "three"):
            MessageService.post_message(group.id, admin_user, _text(body))

        assert UnseenService.mark_group_seen(group.id, member_user).data == 3
        assert UnseenService.mark_group_seen(group.id, member_user).data == 0
        assert UnseenService.unseen_count(group.id, member_user.id).data == 0

    def test_mark_group_seen_fails_for_missing_group(self, db, member_user):
        result = UnseenService.mark_group_seen(MISSING_ID, member_user)

        assert result.error_type is NotFoundError


class TestUnseenServiceUnseenCount:
    """Tests for UnseenService.unseen_count()."""

    def test_counts_without_prior_marks(self, group, admin_user, member_user):
        for body in ("one", "two"):
            MessageService.post_message(group.id, admin_user, _text(body))

        assert UnseenService.unseen_count(group.id, member_user.id).data == 2
        assert UnseenService.unseen_count(group.id, admin_user.id).data == 0

    def test_fails_for_missing_group(self, db, member_user):
        result = UnseenService.unseen_count(MISSING_ID, member_user.id)

        assert result.error_type is NotFoundError

    def test_count_matches_unseen_sets(
        self, group, admin_user, member_user, other_user, outsider_user
    ):
        """
        unseen_count equals the messages whose unseen set holds the member.

        Why it matters: The count query and the per-message projection are
        two readings of the same receipts and must never disagree.
        """
        MessageService.post_message(group.id, admin_user, _text("a"))
        b = MessageService.post_message(group.id, member_user, _text("b")).data
        MembershipService.add_member(group.id, outsider_user)
        c = MessageService.post_message(group.id, other_user, _text("c")).data
        MessageService.post_message(
            group.id,
            outsider_user,
            FileContent(payload=b"1", content_type="text/plain", file_name="d.txt"),
        )
        UnseenService.mark_seen(b.id, admin_user)
        UnseenService.mark_seen(c.id, outsider_user)
        MembershipService.remove_member(group.id, admin_user, other_user)

        messages = MessageService.list_messages(group.id).data
        for user in (admin_user, member_user, other_user, outsider_user):
            expected = sum(1 for m in messages if user.id in m.unseen_by_ids())
            assert UnseenService.unseen_count(group.id, user.id).data == expected


# =============================================================================
# TestDirectoryService
# =============================================================================


class TestDirectoryService:
    """
    Tests for DirectoryService.groups_for() and summary_for().

    Verifies:
    - Groups in the order they were recorded
    - Stale entries skipped but kept
    - Unseen counts per group
    """

    def test_groups_in_entry_order(self, db, admin_user, member_user):
        first = MembershipService.create_group(admin_user, "First").data
        second = MembershipService.create_group(member_user, "Second").data
        MembershipService.add_member(first.id, member_user)

        result = DirectoryService.groups_for(member_user.id)

        assert [g.id for g in result.data] == [second.id, first.id]

    def test_skips_deleted_groups_without_pruning(self, group, admin_user, member_user):
        """
        Entries for deleted groups are skipped when reading and stay stored.

        Why it matters: Directories are never pruned.
        """
        MembershipService.delete_group(group.id, admin_user)

        result = DirectoryService.groups_for(member_user.id)

        assert result.success is True
        assert result.data == []
        assert DirectoryEntry.objects.filter(
            member=member_user, group_ref=group.id
        ).exists()

    def test_includes_groups_member_was_removed_from(self, group, admin_user, member_user):
        MembershipService.remove_member(group.id, admin_user, member_user)

        result = DirectoryService.groups_for(member_user.id)

        assert [g.id for g in result.data] == [group.id]

    def test_fails_for_unknown_member(self, db):
        result = DirectoryService.groups_for(MISSING_ID)

        assert result.error_type is NotFoundError
        assert result.error_code == "MEMBER_NOT_FOUND"

    def test_summary_includes_unseen_counts(self, group, solo_group, admin_user, member_user):
        MessageService.post_message(group.id, admin_user, _text("one"))
        MessageService.post_message(group.id, admin_user, _text("two"))
        MessageService.post_message(solo_group.id, admin_user, _text("note to self"))

        member_summary = DirectoryService.summary_for(member_user.id).data
        admin_summary = DirectoryService.summary_for(admin_user.id).data

        assert [(s.group.id, s.unseen_count) for s in member_summary] == [(group.id, 2)]
        assert {s.group.id: s.unseen_count for s in admin_summary} == {
            group.id: 0,
            solo_group.id: 0,
        }

    def test_summary_fails_for_unknown_member(self, db):
        result = DirectoryService.summary_for(MISSING_ID)

        assert result.error_type is NotFoundError


# =============================================================================
# TestGroupChatScenarios
# =============================================================================


class TestGroupChatScenarios:
    """End-to-end service flows across the ledger, store and tracker."""

    def test_post_then_mark_seen(self, group, admin_user, member_user, other_user):
        """
        A posts, B marks seen: B moves to the seen log, C stays unseen.

        Why it matters: This is the core read-tracking flow.
        """
        seen_at = datetime(2024, 3, 1, 8, 30, tzinfo=dt_timezone.utc)
        hi = MessageService.post_message(group.id, admin_user, _text("hi")).data
        assert sorted(hi.unseen_by_ids()) == sorted([member_user.id, other_user.id])

        UnseenService.mark_seen(hi.id, member_user, seen_at=seen_at)

        hi = Message.objects.get(pk=hi.pk)
        assert hi.unseen_by_ids() == [other_user.id]
        assert [(r.member_id, r.seen_at) for r in hi.seen_log()] == [
            (member_user.id, seen_at)
        ]
        assert UnseenService.unseen_count(group.id, member_user.id).data == 0
        assert UnseenService.unseen_count(group.id, other_user.id).data == 1

    def test_sole_admin_cannot_leave_but_can_remove(self, group, admin_user, member_user):
        """
        The sole admin's leave fails; removing a member still works.

        Why it matters: The last-admin rule blocks leaving without
        blocking other admin work, and removals keep directory entries.
        """
        before = _reload(group)

        leave = MembershipService.leave_group(group.id, admin_user)
        assert leave.error_type is ConflictError
        after = _reload(group)
        assert after.member_ids() == before.member_ids()
        assert after.admin_ids() == before.admin_ids()

        remove = MembershipService.remove_member(group.id, admin_user, member_user)
        assert remove.success is True
        assert group.id in [g.id for g in DirectoryService.groups_for(member_user.id).data]
