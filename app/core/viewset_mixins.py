"""
ViewSet mixins for turning service results into DRF responses.

Services return ServiceResult objects whose failures carry an error kind
from core.exceptions. ServiceResponseMixin maps those kinds to HTTP
statuses so every viewset reports errors in the same shape:

    {"success": false, "error": "...", "error_code": "..."}

Usage:
    from core.viewset_mixins import ServiceResponseMixin

    class GroupViewSet(ServiceResponseMixin, viewsets.ViewSet):
        def create(self, request):
            result = MembershipService.create_group(...)
            if not result.success:
                return self.service_error_response(result)
            return Response(GroupSerializer(result.data).data, status=201)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rest_framework import status
from rest_framework.response import Response

if TYPE_CHECKING:
    from core.services import ServiceResult

logger = logging.getLogger(__name__)


class ServiceResponseMixin:
    """
    Add service-result response helpers to viewsets.

    Note:
        A failed result without an error kind is reported as 400.
        get_serializer_context() comes from GenericViewSet.
    """

    def service_error_response(self, result: ServiceResult) -> Response:
        """
        Build an error response from a failed ServiceResult.

        Args:
            result: A ServiceResult with success=False

        Returns:
            Response with the error body and the kind's HTTP status
        """
        status_code = result.status_code or status.HTTP_400_BAD_REQUEST
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error(f"Service failure [{result.error_code}]: {result.error}")
        return Response(result.to_response(), status=status_code)

    def service_response(
        self,
        result: ServiceResult,
        serializer_class=None,
        success_status: int = status.HTTP_200_OK,
        **serializer_kwargs,
    ) -> Response:
        """
        Build a response for either outcome of a service call.

        On success the data is rendered with serializer_class when given,
        otherwise returned as-is (or as an empty 204 body when None).
        """
        if not result.success:
            return self.service_error_response(result)
        if serializer_class is not None:
            serializer_kwargs.setdefault("context", self.get_serializer_context())
            return Response(
                serializer_class(result.data, **serializer_kwargs).data,
                status=success_status,
            )
        if result.data is None:
            return Response(status=status.HTTP_204_NO_CONTENT)
        return Response(result.data, status=success_status)
