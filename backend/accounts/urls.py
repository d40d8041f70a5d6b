"""
Accounts app URL configuration.

All routes are namespaced under ``accounts`` and designed to be included
in the project-level ``urls.py`` as::

    path('api/accounts/', include('accounts.urls')),

Endpoint Map
------------
Authentication
    POST   /auth/token/                 → TokenObtainView (SimpleJWT + role claims)
    POST   /auth/token/refresh/         → TokenRefreshView (SimpleJWT)

Current User
    GET    /me/                         → MeView

Departments
    GET    /departments/                → DepartmentViewSet.list
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from .views import DepartmentViewSet, MeView, TokenObtainView

app_name = "accounts"

router = DefaultRouter()
router.register(r"departments", DepartmentViewSet, basename="department")

urlpatterns = [
    # ── Authentication ───────────────────────────────────────────────
    path("auth/token/", TokenObtainView.as_view(), name="token-obtain"),
    path(
        "auth/token/refresh/",
        TokenRefreshView.as_view(),
        name="token-refresh",
    ),

    # ── Current User (Me) ───────────────────────────────────────────
    path("me/", MeView.as_view(), name="me"),

    # ── Router-registered viewsets (departments/) ────────────────────
    path("", include(router.urls)),
]
