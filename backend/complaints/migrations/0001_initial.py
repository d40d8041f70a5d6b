import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


STATUS_CHOICES = [
    ("New", "New"),
    ("Assigned", "Assigned"),
    ("In Progress", "In Progress"),
    ("Completed", "Completed"),
    ("Done", "Done"),
    ("Closed", "Closed"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="NatureType",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("name", models.CharField(max_length=100, unique=True, verbose_name="Name")),
                ("description", models.TextField(blank=True, default="", verbose_name="Description")),
                ("is_active", models.BooleanField(db_index=True, default=True, verbose_name="Active")),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="created_nature_types", to=settings.AUTH_USER_MODEL, verbose_name="Created By")),
            ],
            options={
                "verbose_name": "Nature Type",
                "verbose_name_plural": "Nature Types",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Complaint",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("title", models.CharField(max_length=255, verbose_name="Title")),
                ("description", models.TextField(verbose_name="Description")),
                ("error_type", models.CharField(max_length=100, verbose_name="Error Type")),
                ("error_screen", models.CharField(help_text="Screen or module where the problem occurred.", max_length=255, verbose_name="Error Screen")),
                ("remark", models.TextField(blank=True, default="", verbose_name="Remark")),
                ("status", models.CharField(choices=STATUS_CHOICES, default="New", max_length=20, verbose_name="Status")),
                ("version", models.PositiveIntegerField(default=1, help_text="Incremented on every workflow change.", verbose_name="Version")),
                ("nature_type", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="complaints", to="complaints.naturetype", verbose_name="Nature Type")),
                ("client", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="filed_complaints", to=settings.AUTH_USER_MODEL, verbose_name="Client")),
                ("department", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="complaints", to="accounts.department", verbose_name="Department")),
                ("current_assignee", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="assigned_complaints", to=settings.AUTH_USER_MODEL, verbose_name="Current Assignee")),
                ("first_assignee", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="first_assigned_complaints", to=settings.AUTH_USER_MODEL, verbose_name="First Assignee")),
            ],
            options={
                "verbose_name": "Complaint",
                "verbose_name_plural": "Complaints",
                "ordering": ["-updated_at"],
                "indexes": [
                    models.Index(fields=["status"], name="complaint_status_idx"),
                    models.Index(fields=["department", "status"], name="complaint_dept_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ComplaintAttachment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("filename", models.CharField(max_length=255, verbose_name="Stored Filename")),
                ("original_name", models.CharField(max_length=255, verbose_name="Original Name")),
                ("mime_type", models.CharField(max_length=100, verbose_name="MIME Type")),
                ("size", models.PositiveBigIntegerField(verbose_name="Size (bytes)")),
                ("url", models.URLField(max_length=500, verbose_name="URL")),
                ("uploaded_at", models.DateTimeField(default=django.utils.timezone.now, verbose_name="Uploaded At")),
                ("complaint", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="attachments", to="complaints.complaint", verbose_name="Complaint")),
                ("uploaded_by", models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL, verbose_name="Uploaded By")),
            ],
            options={
                "verbose_name": "Complaint Attachment",
                "verbose_name_plural": "Complaint Attachments",
                "ordering": ["uploaded_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="ComplaintHistory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("status", models.CharField(choices=STATUS_CHOICES, max_length=20, verbose_name="Resulting Status")),
                ("notes", models.TextField(blank=True, default="", verbose_name="Notes")),
                ("timestamp", models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name="Timestamp")),
                ("complaint", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="history", to="complaints.complaint", verbose_name="Complaint")),
                ("assigned_from", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="+", to=settings.AUTH_USER_MODEL, verbose_name="Assigned From")),
                ("assigned_to", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="+", to=settings.AUTH_USER_MODEL, verbose_name="Assigned To")),
                ("department", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="+", to="accounts.department", verbose_name="Resulting Department")),
                ("changed_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="complaint_changes", to=settings.AUTH_USER_MODEL, verbose_name="Changed By")),
            ],
            options={
                "verbose_name": "Complaint History",
                "verbose_name_plural": "Complaint History",
                "ordering": ["timestamp", "id"],
                "indexes": [
                    models.Index(fields=["complaint", "timestamp", "id"], name="history_replay_idx"),
                ],
            },
        ),
    ]
