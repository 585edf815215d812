"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Group management with membership inline
- Message moderation
- Directory entry inspection
"""

from django.contrib import admin

from chat.models import ChatGroup, DirectoryEntry, GroupMembership, Message


class GroupMembershipInline(admin.TabularInline):
    """Inline display of memberships in group admin."""

    model = GroupMembership
    extra = 0
    readonly_fields = ["created_at"]
    raw_id_fields = ["member"]


@admin.register(ChatGroup)
class ChatGroupAdmin(admin.ModelAdmin):
    """Admin interface for ChatGroup model."""

    list_display = [
        "id",
        "name",
        "member_count",
        "created_by",
        "created_at",
    ]
    list_filter = ["created_at"]
    search_fields = ["name", "id"]
    readonly_fields = ["created_at", "updated_at", "last_message"]
    raw_id_fields = ["created_by"]
    inlines = [GroupMembershipInline]
    ordering = ["-created_at"]

    @admin.display(description="Members")
    def member_count(self, obj: ChatGroup) -> int:
        return obj.memberships.count()


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = [
        "id",
        "group",
        "sender",
        "kind",
        "preview",
        "file_size",
        "created_at",
    ]
    list_filter = ["kind", "created_at"]
    search_fields = ["body", "file_name", "sender__email"]
    readonly_fields = ["created_at", "updated_at", "file_size"]
    exclude = ["file_data"]
    raw_id_fields = ["group", "sender"]
    ordering = ["-created_at"]


@admin.register(DirectoryEntry)
class DirectoryEntryAdmin(admin.ModelAdmin):
    """Admin interface for DirectoryEntry model."""

    list_display = ["id", "member", "group_ref", "added_at"]
    search_fields = ["member__email", "group_ref"]
    readonly_fields = ["added_at"]
    raw_id_fields = ["member"]
    ordering = ["-added_at"]
