"""
Constants and configuration for chat module features.

This module centralizes configuration values for:
- Group naming limits
- Message content limits (text length, file size)

File size comes from settings so deployments can tune it per environment.
Import example:
    from chat.constants import GROUP_CONFIG, MESSAGE_CONFIG
"""

from typing import Final

from django.conf import settings


# =============================================================================
# Group Configuration
# =============================================================================


class GROUP_CONFIG:
    """Configuration for chat groups."""

    MAX_NAME_LENGTH: Final[int] = 100  # Matches ChatGroup.name max_length


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    # Content limits
    MAX_TEXT_LENGTH: Final[int] = 10000  # Characters
    MAX_FILE_NAME_LENGTH: Final[int] = 255  # Matches Message.file_name max_length
    DEFAULT_CONTENT_TYPE: Final[str] = "application/octet-stream"

    # List settings
    DEFAULT_PAGE_SIZE: Final[int] = 50
    MAX_PAGE_SIZE: Final[int] = 100

    @staticmethod
    def max_file_bytes() -> int:
        """Largest accepted file payload, from CHAT_MAX_FILE_SIZE_MB."""
        return getattr(settings, "CHAT_MAX_FILE_SIZE_MB", 10) * 1024 * 1024
