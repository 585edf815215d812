"""
Pagination classes for chat API.

This module provides cursor-based pagination for group messages:
- MessageCursorPagination: For message lists (oldest first)

Cursor-based pagination advantages:
- Stable results while new messages are posted
- No offset calculation needed

Design Decisions:
    - Messages ordered oldest-first, the order they were stored
    - Cursors encode (created_at, id) for stability
    - Default page size comes from CHAT_MESSAGE_PAGE_SIZE
"""

from django.conf import settings
from rest_framework.pagination import CursorPagination

from chat.constants import MESSAGE_CONFIG


class MessageCursorPagination(CursorPagination):
    """
    Cursor pagination for message lists.

    Uses (created_at, id) for stable cursor position.

    Default: CHAT_MESSAGE_PAGE_SIZE messages per page (50)
    Maximum: 100 messages per page

    Query parameters:
        cursor: Encoded cursor for position
        page_size: Number of messages (optional override)
    """

    page_size = getattr(settings, "CHAT_MESSAGE_PAGE_SIZE", MESSAGE_CONFIG.DEFAULT_PAGE_SIZE)
    max_page_size = MESSAGE_CONFIG.MAX_PAGE_SIZE
    page_size_query_param = "page_size"
    ordering = ("created_at", "id")
    cursor_query_param = "cursor"
