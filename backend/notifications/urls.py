"""
Notifications app URL configuration.

  GET  /api/notifications/              → delivery-status list (admins)
  POST /api/notifications/{id}/retry/   → failed → pending (admins)
  GET  /api/notifications/mine/         → the caller's notifications
"""

from rest_framework.routers import DefaultRouter

from .views import NotificationViewSet

router = DefaultRouter()
router.register(
    prefix=r"notifications",
    viewset=NotificationViewSet,
    basename="notification",
)

urlpatterns = router.urls
