"""
Accounts app views.

All views follow the **Thin View** pattern: delegate to the service
layer and return the result wrapped in a DRF ``Response``.

View Map
--------
- ``TokenObtainView``    — POST /auth/token/
- ``MeView``             — GET /me/
- ``DepartmentViewSet``  — GET /departments/
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView

from .serializers import (
    DepartmentSerializer,
    MeSerializer,
    RoleClaimsTokenObtainPairSerializer,
)
from .services import CurrentUserService, DepartmentService


class TokenObtainView(TokenObtainPairView):
    """
    POST /api/accounts/auth/token/

    Exchange username (or email) + password for a JWT pair carrying
    ``role`` and ``department_id`` claims.
    """

    serializer_class = RoleClaimsTokenObtainPairSerializer


class MeView(APIView):
    """GET /api/accounts/me/ → the authenticated principal's profile."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Current user profile",
        responses={200: OpenApiResponse(response=MeSerializer)},
        tags=["Accounts"],
    )
    def get(self, request: Request) -> Response:
        user = CurrentUserService.get_profile(request.user)
        return Response(MeSerializer(user).data, status=status.HTTP_200_OK)


class DepartmentViewSet(viewsets.ViewSet):
    """
    GET /api/accounts/departments/

    Active departments, used by clients to pick a target department when
    filing a complaint and by staff for reassignment.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List active departments",
        responses={200: OpenApiResponse(response=DepartmentSerializer(many=True))},
        tags=["Accounts"],
    )
    def list(self, request: Request) -> Response:
        qs = DepartmentService.list_active()
        return Response(DepartmentSerializer(qs, many=True).data, status=status.HTTP_200_OK)
