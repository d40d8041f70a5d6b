from django.contrib import admin

from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("id", "recipient", "complaint", "event_type", "channel",
                    "status", "attempts", "created_at", "sent_at")
    list_filter = ("status", "channel", "event_type")
    search_fields = ("destination", "recipient__username", "last_error")
    readonly_fields = ("recipient", "complaint", "history", "event_type",
                       "channel", "destination", "message", "status",
                       "attempts", "last_error", "next_attempt_at", "sent_at")

    def has_add_permission(self, request):
        return False
