"""
Message content variants.

A message is either text or a file. Services accept and models return one of
the two dataclasses below instead of a record with optional fields, so code
that handles a message matches on the variant it got:

    content = message.content
    if isinstance(content, TextContent):
        preview = content.body
    else:
        preview = content.file_name

Related files:
    - models.py: Message stores the variant in kind-specific columns
    - services.py: MessageService.post_message validates the variant
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class TextContent:
    """A text message body."""

    body: str


@dataclass(frozen=True)
class FileContent:
    """
    A file message payload with its metadata.

    Attributes:
        payload: Raw file bytes, stored opaquely
        content_type: MIME type reported by the uploader
        file_name: Original file name shown to members
    """

    payload: bytes
    content_type: str
    file_name: str

    @property
    def size(self) -> int:
        """Payload size in bytes."""
        return len(self.payload)


MessageContent = Union[TextContent, FileContent]
