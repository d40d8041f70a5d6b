"""
Core app URL configuration.

Provides cross-app aggregation endpoints that serve the frontend
dashboard, system-wide constants/enums, and the routing settings.

URL prefix (registered in ``backend/urls.py``)::

    path('api/core/', include('core.urls'))

Endpoint summary
----------------
GET      /api/core/dashboard/          — Role-aware complaint statistics.
GET      /api/core/constants/          — System choice enumerations for frontend dropdowns.
GET/PUT  /api/core/settings/routing/   — Auto-routing configuration (admins).
"""

from django.urls import path

from . import views

app_name = "core"

urlpatterns = [
    # ── Dashboard ────────────────────────────────────────────────────
    path(
        "dashboard/",
        views.DashboardStatsView.as_view(),
        name="dashboard-stats",
    ),

    # ── System Constants / Enums ─────────────────────────────────────
    path(
        "constants/",
        views.SystemConstantsView.as_view(),
        name="system-constants",
    ),

    # ── Settings ─────────────────────────────────────────────────────
    path(
        "settings/routing/",
        views.RoutingSettingsView.as_view(),
        name="routing-settings",
    ),
]
