"""
Complaints app ViewSets.

Architecture: Views are intentionally thin.
Every view follows the strict three-step pattern:

    1. Parse / validate input via a serializer.
    2. Delegate all business logic to ``ComplaintWorkflowService``.
    3. Serialize the result and return a DRF ``Response``.

Domain exceptions raised by the service are translated to HTTP by
``core.domain.exception_handler``; no view catches them.

ViewSets
--------
- ``ComplaintViewSet``  — list / create / retrieve plus the ``advance``,
  ``reassign`` and ``history`` actions.
- ``NatureTypeViewSet`` — active nature types for the submission form.
"""

from __future__ import annotations

from django.apps import apps
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
)
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from core.domain.access import Principal
from core.pagination import StandardPagination

from .serializers import (
    ComplaintAdvanceSerializer,
    ComplaintCreateSerializer,
    ComplaintDetailSerializer,
    ComplaintFilterSerializer,
    ComplaintHistorySerializer,
    ComplaintListSerializer,
    ComplaintReassignSerializer,
    NatureTypeSerializer,
)
from .services import ComplaintWorkflowService, NatureTypeService


class ComplaintViewSet(viewsets.ViewSet):
    """
    Central ViewSet for the complaints app.

    Uses ``viewsets.ViewSet`` (not ``ModelViewSet``) so every action is
    explicitly defined; there is deliberately no update / delete route,
    since status, assignee and department only change through the
    workflow actions.

    Permission Strategy
    -------------------
    The base permission is ``IsAuthenticated``.  Role and relationship
    checks are enforced exclusively inside the service layer.
    """

    permission_classes = [IsAuthenticated]
    lookup_value_regex = r"[0-9]+"

    # ── Helpers ──────────────────────────────────────────────────────

    @property
    def workflow(self) -> ComplaintWorkflowService:
        return apps.get_app_config("complaints").workflow

    def _principal(self, request: Request) -> Principal:
        return Principal.from_user(request.user)

    def _detail(self, complaint, request: Request, code: int = status.HTTP_200_OK) -> Response:
        out = ComplaintDetailSerializer(complaint, context={"request": request})
        return Response(out.data, status=code)

    # ── Standard routes ──────────────────────────────────────────────

    @extend_schema(
        summary="List complaints",
        description="Complaints visible to the caller's role, newest activity first.",
        parameters=[
            OpenApiParameter(name="status", type=str, location=OpenApiParameter.QUERY, description="Filter by status."),
            OpenApiParameter(name="department", type=int, location=OpenApiParameter.QUERY, description="Filter by department PK."),
            OpenApiParameter(name="nature_type", type=int, location=OpenApiParameter.QUERY, description="Filter by nature type PK."),
            OpenApiParameter(name="search", type=str, location=OpenApiParameter.QUERY, description="Free-text search."),
            OpenApiParameter(name="page", type=int, location=OpenApiParameter.QUERY, description="Page number."),
            OpenApiParameter(name="page_size", type=int, location=OpenApiParameter.QUERY, description="Page size (max 100)."),
        ],
        responses={200: OpenApiResponse(response=ComplaintListSerializer(many=True))},
        tags=["Complaints"],
    )
    def list(self, request: Request) -> Response:
        filters = ComplaintFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        qs = self.workflow.list(self._principal(request), filters.validated_data)

        paginator = StandardPagination()
        page = paginator.paginate_queryset(qs, request, view=self)
        out = ComplaintListSerializer(page, many=True)
        return paginator.get_paginated_response(out.data)

    @extend_schema(
        summary="File a complaint",
        request=ComplaintCreateSerializer,
        responses={
            201: OpenApiResponse(response=ComplaintDetailSerializer, description="Complaint created in 'New'."),
            400: OpenApiResponse(description="Missing fields or inactive nature type / department."),
            403: OpenApiResponse(description="Role may not file complaints, or a client picked a department."),
            503: OpenApiResponse(description="Routing is not configured."),
        },
        tags=["Complaints"],
    )
    def create(self, request: Request) -> Response:
        serializer = ComplaintCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        principal = self._principal(request)
        complaint = self.workflow.create(serializer.validated_data, principal)
        return self._detail(complaint, request, status.HTTP_201_CREATED)

    @extend_schema(
        summary="Retrieve a complaint",
        responses={
            200: OpenApiResponse(response=ComplaintDetailSerializer),
            404: OpenApiResponse(description="Not found or not visible."),
        },
        tags=["Complaints"],
    )
    def retrieve(self, request: Request, pk: int = None) -> Response:
        complaint = self.workflow.get(pk, self._principal(request))
        return self._detail(complaint, request)

    # ── Workflow actions ─────────────────────────────────────────────

    @action(detail=True, methods=["post"], url_path="advance")
    @extend_schema(
        summary="Advance complaint status",
        description="Move the complaint to the immediate successor of its current status.",
        request=ComplaintAdvanceSerializer,
        responses={
            200: OpenApiResponse(response=ComplaintDetailSerializer, description="Transition applied."),
            403: OpenApiResponse(description="Permission denied."),
            404: OpenApiResponse(description="Not found or not visible."),
            409: OpenApiResponse(description="Not the immediate successor, or stale version."),
        },
        tags=["Complaints – Workflow"],
    )
    def advance(self, request: Request, pk: int = None) -> Response:
        serializer = ComplaintAdvanceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        complaint = self.workflow.advance(
            pk,
            data["target_status"],
            self._principal(request),
            notes=data["notes"],
            expected_version=data.get("expected_version"),
        )
        return self._detail(complaint, request)

    @action(detail=True, methods=["post"], url_path="reassign")
    @extend_schema(
        summary="Reassign complaint",
        description="Change assignee and optionally department without changing status.",
        request=ComplaintReassignSerializer,
        responses={
            200: OpenApiResponse(response=ComplaintDetailSerializer, description="Reassigned."),
            400: OpenApiResponse(description="Invalid or unchanged target."),
            403: OpenApiResponse(description="Permission denied."),
            404: OpenApiResponse(description="Not found or not visible."),
            409: OpenApiResponse(description="Complaint closed, or stale version."),
        },
        tags=["Complaints – Workflow"],
    )
    def reassign(self, request: Request, pk: int = None) -> Response:
        serializer = ComplaintReassignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        complaint = self.workflow.reassign(
            pk,
            data["assignee_id"],
            self._principal(request),
            new_department_id=data.get("department_id"),
            notes=data["notes"],
            expected_version=data.get("expected_version"),
        )
        return self._detail(complaint, request)

    @action(detail=True, methods=["get"], url_path="history")
    @extend_schema(
        summary="Get complaint history",
        description="The immutable audit trail for the complaint, newest first.",
        responses={
            200: OpenApiResponse(response=ComplaintHistorySerializer(many=True), description="History rows."),
            404: OpenApiResponse(description="Not found or not visible."),
        },
        tags=["Complaints"],
    )
    def history(self, request: Request, pk: int = None) -> Response:
        rows = self.workflow.recorder.list_for(pk, self._principal(request))
        return Response(ComplaintHistorySerializer(rows, many=True).data, status=status.HTTP_200_OK)


class NatureTypeViewSet(viewsets.ViewSet):
    """GET /api/complaint-nature-types/ — active nature types."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List active nature types",
        responses={200: OpenApiResponse(response=NatureTypeSerializer(many=True))},
        tags=["Complaints"],
    )
    def list(self, request: Request) -> Response:
        qs = NatureTypeService.list_active()
        return Response(NatureTypeSerializer(qs, many=True).data, status=status.HTTP_200_OK)
