from django.apps import AppConfig


class ComplaintsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "complaints"
    verbose_name = "Complaints"

    def ready(self):
        from notifications.dispatcher import NotificationDispatcher

        from .audit import AuditTrailRecorder
        from .routing import RoutingResolver
        from .services import ComplaintWorkflowService

        self.workflow = ComplaintWorkflowService(
            recorder=AuditTrailRecorder(),
            dispatcher=NotificationDispatcher(),
            resolver=RoutingResolver(),
        )
