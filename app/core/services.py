"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Service Layer Philosophy:
    Services encapsulate business logic separate from views and models.
    Views handle HTTP concerns, models handle data, services handle logic.

Pattern Comparison:
    - ServiceResult: Use for expected failures (validation, authority, invariants)
    - Exceptions: Use for unexpected failures (database errors, bugs)

Usage:
    from core.exceptions import NotFoundError
    from core.services import BaseService, ServiceResult

    class GroupService(BaseService):
        @classmethod
        def rename(cls, group_id: int, name: str) -> ServiceResult[ChatGroup]:
            with cls.atomic():
                group = ChatGroup.objects.select_for_update().filter(id=group_id).first()
                if group is None:
                    return ServiceResult.failure(
                        "Group not found",
                        error_code="GROUP_NOT_FOUND",
                        error_type=NotFoundError,
                    )
                group.name = name
                group.save(update_fields=["name", "updated_at"])

            cls.get_logger().info(f"Renamed group {group.id}")
            return ServiceResult.success(group)

Related:
    - core.exceptions: Error kinds and their HTTP statuses
    - core.viewset_mixins: Turning a failed result into a response
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

from core.exceptions import BaseApplicationError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Provides consistent success/failure handling without exceptions.
    Use this for expected failures (validation errors, authority checks,
    invariant violations).

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
        error_type: Error kind from core.exceptions (None if successful)
        errors: Field-level errors for validation failures

    Usage:
        # Success case
        return ServiceResult.success(group)

        # Failure case
        return ServiceResult.failure(
            "Member already in group",
            error_code="ALREADY_MEMBER",
            error_type=ConflictError,
        )

        # Check result
        result = MembershipService.add_member(group_id, member)
        if not result.success and result.error_type is ConflictError:
            ...
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    error_type: type[BaseApplicationError] | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """
        Create a successful result.

        Args:
            data: The result data

        Returns:
            ServiceResult with success=True and data set
        """
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
        error_type: type[BaseApplicationError] = ValidationError,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code (defaults to the
                error type's default code)
            errors: Field-level errors (for validation failures)
            error_type: Error kind; ValidationError when omitted

        Returns:
            ServiceResult with success=False and error details

        Example:
            return ServiceResult.failure(
                "Group not found",
                error_code="GROUP_NOT_FOUND",
                error_type=NotFoundError,
            )
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code or error_type.default_error_code,
            error_type=error_type,
            errors=errors,
        )

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Application errors keep their kind, code and details. Anything else
        is reported as a generic application error named after its class.

        Args:
            exc: The caught exception
            error_code: Optional error code override

        Returns:
            ServiceResult with error details from exception
        """
        if isinstance(exc, BaseApplicationError):
            return cls(
                success=False,
                error=exc.message,
                error_code=error_code or exc.error_code,
                error_type=type(exc),
                errors=exc.details or None,
            )
        return cls(
            success=False,
            error=str(exc),
            error_code=error_code or exc.__class__.__name__.upper(),
            error_type=BaseApplicationError,
        )

    @property
    def status_code(self) -> int | None:
        """HTTP status for a failed result, None on success."""
        if self.success or self.error_type is None:
            return None
        return self.error_type.status_code

    def raise_for_error(self) -> None:
        """
        Raise the failure as its exception kind.

        Lets callers that prefer exceptions (management commands, tests)
        convert a failed result back into a raised error.
        """
        if self.success:
            return
        error_type = self.error_type or BaseApplicationError
        raise error_type(self.error or "", error_code=self.error_code, details=self.errors)

    def to_response(self) -> dict[str, Any]:
        """
        Convert to API response format.

        Returns:
            Dict with success status and data or error details
        """
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {
            "success": False,
            "error": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        return response

    def map(self, func) -> ServiceResult:
        """
        Transform the data if successful.

        Example:
            result = MessageService.post_message(group_id, sender, content)
            serialized = result.map(lambda m: MessageSerializer(m).data)
        """
        if self.success and self.data is not None:
            return ServiceResult.success(func(self.data))
        return self  # type: ignore

    def __bool__(self) -> bool:
        """Allow using result in boolean context."""
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Services should be stateless
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        All database operations within this context manager are
        wrapped in a transaction. If any operation fails, all
        changes are rolled back.

        Note:
            This is a thin wrapper around Django's transaction.atomic().
            Row locks taken with select_for_update() inside the block are
            held until it exits.
        """
        with transaction.atomic():
            yield
