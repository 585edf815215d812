"""
Core base model shared by the chat and account models.

Base Classes:
    BaseModel: Abstract model with timestamps (created_at, updated_at)

Usage:
    from core.models import BaseModel

    class ChatGroup(BaseModel):
        name = models.CharField(max_length=100)

Note:
    created_at is indexed because messages are listed and paginated by it.
"""

from __future__ import annotations

from django.db import models


class BaseModel(models.Model):
    """
    Abstract base model providing creation and modification timestamps.

    Fields:
        created_at: Set once when the row is inserted, never changed
        updated_at: Refreshed on every save

    Note:
        Subclasses that need a stable order (messages, memberships)
        override Meta.ordering with a tie-breaker on id.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this record was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when this record was last modified",
    )

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(id={self.pk})"
