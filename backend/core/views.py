"""
Core app views — **Thin Views**.

Each view delegates all business logic to the corresponding service in
``core.services``.  Views are responsible only for:

1. Extracting and validating input from the request.
2. Calling the service with the authenticated principal and parameters.
3. Serialising the result and returning an HTTP ``Response``.

No model imports, no aggregation logic, no cross-app queries.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from core.domain.access import Principal

from .serializers import (
    DashboardStatsSerializer,
    RoutingSettingsSerializer,
    RoutingSettingsUpdateSerializer,
    SystemConstantsSerializer,
)
from .services import (
    DashboardAggregationService,
    RoutingSettingsService,
    SystemConstantsService,
)


class DashboardStatsView(APIView):
    """
    **GET /api/core/dashboard/**

    Aggregated complaint statistics over the caller's visible complaints.

    **Authentication**: Required (``IsAuthenticated``).
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Dashboard statistics",
        description="Role-aware complaint counts and recent workflow activity.",
        responses={200: OpenApiResponse(response=DashboardStatsSerializer, description="Dashboard statistics.")},
        tags=["System"],
    )
    def get(self, request: Request) -> Response:
        service = DashboardAggregationService(Principal.from_user(request.user))
        serializer = DashboardStatsSerializer(service.get_stats())
        return Response(serializer.data, status=status.HTTP_200_OK)


class SystemConstantsView(APIView):
    """
    **GET /api/core/constants/**

    Return all system-wide choice enumerations so the frontend can
    dynamically build dropdowns, filters, and labels without hardcoding
    values.

    **Authentication**: Not required (``AllowAny``).
    These constants are public configuration data.
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="System constants",
        description=(
            "Return complaint statuses (in workflow order), roles, notification "
            "channels and routing policies."
        ),
        responses={200: OpenApiResponse(response=SystemConstantsSerializer, description="System constants.")},
        tags=["System"],
    )
    def get(self, request: Request) -> Response:
        data = SystemConstantsService.get_constants()
        serializer = SystemConstantsSerializer(data)
        return Response(serializer.data, status=status.HTTP_200_OK)


class RoutingSettingsView(APIView):
    """
    **GET / PUT /api/core/settings/routing/**

    Read or change how new complaints are routed.  Admins only; the
    check lives in ``RoutingSettingsService``.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Get routing settings",
        responses={
            200: OpenApiResponse(response=RoutingSettingsSerializer),
            403: OpenApiResponse(description="Admins only."),
        },
        tags=["System"],
    )
    def get(self, request: Request) -> Response:
        row = RoutingSettingsService.get(Principal.from_user(request.user))
        return Response(RoutingSettingsSerializer(row).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Update routing settings",
        request=RoutingSettingsUpdateSerializer,
        responses={
            200: OpenApiResponse(response=RoutingSettingsSerializer),
            400: OpenApiResponse(description="Unknown or inactive department."),
            403: OpenApiResponse(description="Admins only."),
        },
        tags=["System"],
    )
    def put(self, request: Request) -> Response:
        serializer = RoutingSettingsUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        row = RoutingSettingsService.update(
            Principal.from_user(request.user), serializer.validated_data,
        )
        return Response(RoutingSettingsSerializer(row).data, status=status.HTTP_200_OK)
