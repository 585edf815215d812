"""
Chat application configuration.

This app provides group chat with:
- Groups with members and admins
- Text and file messages
- Per-member unseen tracking and seen logs
- A per-member directory of groups
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """Configuration for the chat application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"
