"""
Domain error kinds shared by every service.

Each kind carries the HTTP status it maps to, so views can turn a failed
service call into a response without a lookup table of their own.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - malformed or missing input (400)
    ├── NotFoundError - referenced group/message/member does not resolve (404)
    ├── PermissionDeniedError - actor lacks membership or admin authority (403)
    └── ConflictError - operation would break a group invariant (409)

Usage:
    from core.exceptions import ConflictError

    raise ConflictError("Member already in group", error_code="ALREADY_MEMBER")

    # Services normally return the kind instead of raising it:
    return ServiceResult.failure(
        "Member already in group",
        error_code="ALREADY_MEMBER",
        error_type=ConflictError,
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import status

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, ids, etc.)
        status_code: HTTP status used when the error reaches a view
    """

    default_error_code: str = "APPLICATION_ERROR"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Group not found",
                "error_code": "GROUP_NOT_FOUND",
                "details": {"group_id": 12}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for empty group names, blank text bodies, file messages without a
    payload or name, and files over the configured size limit.

    Note:
        Request-shape errors are handled by DRF serializers. This kind is
        for service-layer rules.
    """

    default_error_code: str = "VALIDATION_ERROR"
    status_code: int = status.HTTP_400_BAD_REQUEST


class NotFoundError(BaseApplicationError):
    """
    Raised when a referenced group, message or member does not exist.

    Also used when a member is expected to belong to a group and does not
    (e.g. leaving a group you are not in).
    """

    default_error_code: str = "NOT_FOUND"
    status_code: int = status.HTTP_404_NOT_FOUND


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the acting member lacks the required authority.

    Example:
        if not group.is_admin(actor.id):
            raise PermissionDeniedError(
                "Only group admins can remove members",
                error_code="NOT_ADMIN",
            )

    Note:
        Missing or invalid credentials are DRF's AuthenticationFailed (401).
        This kind is for authorization inside the chat domain.
    """

    default_error_code: str = "PERMISSION_DENIED"
    status_code: int = status.HTTP_403_FORBIDDEN


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current group state.

    Use for:
    - Adding a member who is already in the group
    - Removing, demoting or letting leave the only remaining admin
    - Promoting a member who is already an admin
    """

    default_error_code: str = "CONFLICT"
    status_code: int = status.HTTP_409_CONFLICT
