"""
Complaints app URL configuration.

All routes are registered under the ``/api/`` prefix.

Route Hierarchy
---------------
  /api/complaints/                        → list / create
  /api/complaints/{id}/                   → retrieve

  ── Workflow @actions (resource-level RPC) ──────────────────────
  POST /api/complaints/{id}/advance/      → move to the next status
  POST /api/complaints/{id}/reassign/     → change assignee / department

  ── Sub-resource @actions ───────────────────────────────────────
  GET  /api/complaints/{id}/history/      → audit trail, newest first

  /api/complaint-nature-types/            → active nature types
"""

from rest_framework.routers import DefaultRouter

from .views import ComplaintViewSet, NatureTypeViewSet

router = DefaultRouter()
router.register(
    prefix=r"complaints",
    viewset=ComplaintViewSet,
    basename="complaint",
)
router.register(
    prefix=r"complaint-nature-types",
    viewset=NatureTypeViewSet,
    basename="nature-type",
)

urlpatterns = router.urls
