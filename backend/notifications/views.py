"""
Notifications app ViewSets.

Thin views over ``NotificationQueryService`` and
``NotificationDeliveryService``; domain exceptions are translated to
HTTP by the global exception handler.
"""

from __future__ import annotations

from django.apps import apps
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from core.domain.access import Principal
from core.pagination import StandardPagination

from .delivery import NotificationDeliveryService
from .serializers import (
    MyNotificationSerializer,
    NotificationFilterSerializer,
    NotificationSerializer,
)
from .services import NotificationQueryService


class NotificationViewSet(viewsets.ViewSet):
    """
    Delivery-status view for administrators, plus the caller's own
    notifications under ``mine/``.
    """

    permission_classes = [IsAuthenticated]
    lookup_value_regex = r"[0-9]+"

    def _paginate(self, request: Request, qs, serializer_class) -> Response:
        paginator = StandardPagination()
        page = paginator.paginate_queryset(qs, request, view=self)
        return paginator.get_paginated_response(serializer_class(page, many=True).data)

    @extend_schema(
        summary="List notifications (admin)",
        parameters=[
            OpenApiParameter(name="status", type=str, location=OpenApiParameter.QUERY, description="pending, sent or failed."),
            OpenApiParameter(name="channel", type=str, location=OpenApiParameter.QUERY, description="email or whatsapp."),
            OpenApiParameter(name="complaint", type=int, location=OpenApiParameter.QUERY, description="Complaint PK."),
            OpenApiParameter(name="recipient", type=int, location=OpenApiParameter.QUERY, description="Recipient user PK."),
        ],
        responses={
            200: OpenApiResponse(response=NotificationSerializer(many=True)),
            403: OpenApiResponse(description="Admins only."),
        },
        tags=["Notifications"],
    )
    def list(self, request: Request) -> Response:
        filters = NotificationFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        qs = NotificationQueryService.list_all(
            Principal.from_user(request.user), filters.validated_data,
        )
        return self._paginate(request, qs, NotificationSerializer)

    @action(detail=True, methods=["post"], url_path="retry")
    @extend_schema(
        summary="Retry a failed notification (admin)",
        request=None,
        responses={
            200: OpenApiResponse(response=NotificationSerializer, description="Notification is pending again."),
            403: OpenApiResponse(description="Admins only."),
            404: OpenApiResponse(description="Notification not found."),
            409: OpenApiResponse(description="Notification is not failed."),
        },
        tags=["Notifications"],
    )
    def retry(self, request: Request, pk=None) -> Response:
        NotificationQueryService.require_admin(Principal.from_user(request.user))
        dispatcher = apps.get_app_config("complaints").workflow.dispatcher
        notification = NotificationDeliveryService.retry(
            int(pk),
            on_commit=lambda stream: dispatcher.schedule_streams([stream]),
        )
        return Response(NotificationSerializer(notification).data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path="mine")
    @extend_schema(
        summary="My notifications",
        responses={200: OpenApiResponse(response=MyNotificationSerializer(many=True))},
        tags=["Notifications"],
    )
    def mine(self, request: Request) -> Response:
        qs = NotificationQueryService.list_mine(Principal.from_user(request.user))
        return self._paginate(request, qs, MyNotificationSerializer)
