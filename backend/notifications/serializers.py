"""
Notifications app serializers.

``NotificationSerializer`` is the administrative view and exposes
delivery internals (attempts, last error, destination).
``MyNotificationSerializer`` is what a recipient sees about their own
messages; delivery failures are never shown to end users.
"""

from rest_framework import serializers

from .models import DeliveryStatus, Notification, NotificationChannel


class NotificationFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=DeliveryStatus.choices, required=False)
    channel = serializers.ChoiceField(choices=NotificationChannel.choices, required=False)
    complaint = serializers.IntegerField(required=False, min_value=1)
    recipient = serializers.IntegerField(required=False, min_value=1)


class NotificationSerializer(serializers.ModelSerializer):
    recipient_username = serializers.CharField(source="recipient.username", read_only=True)
    complaint_title = serializers.CharField(source="complaint.title", read_only=True)

    class Meta:
        model = Notification
        fields = [
            "id",
            "recipient",
            "recipient_username",
            "complaint",
            "complaint_title",
            "history",
            "event_type",
            "channel",
            "destination",
            "message",
            "status",
            "attempts",
            "last_error",
            "next_attempt_at",
            "sent_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class MyNotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = [
            "id",
            "complaint",
            "event_type",
            "channel",
            "message",
            "sent_at",
            "created_at",
        ]
        read_only_fields = fields
