import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("complaints", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("event_type", models.CharField(choices=[("created", "Complaint Created"), ("status_changed", "Status Changed"), ("reassigned", "Reassigned")], max_length=20, verbose_name="Event Type")),
                ("message", models.TextField(verbose_name="Message")),
                ("channel", models.CharField(choices=[("email", "Email"), ("whatsapp", "WhatsApp")], max_length=20, verbose_name="Channel")),
                ("destination", models.CharField(help_text="Email address or phone number at the time of dispatch.", max_length=255, verbose_name="Destination")),
                ("status", models.CharField(choices=[("pending", "Pending"), ("sent", "Sent"), ("failed", "Failed")], db_index=True, default="pending", max_length=10, verbose_name="Delivery Status")),
                ("attempts", models.PositiveSmallIntegerField(default=0, verbose_name="Attempts")),
                ("last_error", models.TextField(blank=True, default="", verbose_name="Last Error")),
                ("next_attempt_at", models.DateTimeField(blank=True, null=True, verbose_name="Next Attempt At")),
                ("sent_at", models.DateTimeField(blank=True, null=True, verbose_name="Sent At")),
                ("recipient", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="notifications", to=settings.AUTH_USER_MODEL, verbose_name="Recipient")),
                ("complaint", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="notifications", to="complaints.complaint", verbose_name="Complaint")),
                ("history", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="notifications", to="complaints.complainthistory", verbose_name="Triggering Transition")),
            ],
            options={
                "verbose_name": "Notification",
                "verbose_name_plural": "Notifications",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["recipient", "complaint", "channel", "status"], name="notification_stream_idx"),
                    models.Index(fields=["status", "next_attempt_at"], name="notification_due_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=["recipient", "complaint", "channel", "history"], name="uniq_notification_per_transition_channel"),
                ],
            },
        ),
    ]
