import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="SystemSettings",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("type", models.CharField(choices=[("system", "System"), ("whatsapp", "WhatsApp"), ("email", "Email")], max_length=20, unique=True, verbose_name="Settings Type")),
                ("is_enabled", models.BooleanField(default=True, verbose_name="Enabled")),
                ("auto_routing_enabled", models.BooleanField(default=False, help_text="Distribute new complaints among the selected departments.", verbose_name="Auto-routing Enabled")),
                ("routing_policy", models.CharField(choices=[("random", "Random"), ("round_robin", "Round Robin"), ("least_loaded", "Least Loaded")], default="random", max_length=20, verbose_name="Routing Policy")),
                ("auto_routing_departments", models.ManyToManyField(blank=True, related_name="+", to="accounts.department", verbose_name="Auto-routing Departments")),
                ("default_department", models.ForeignKey(blank=True, help_text="Used when auto-routing is off or no candidate is active.", null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to="accounts.department", verbose_name="Default Department")),
            ],
            options={
                "verbose_name": "System Settings",
                "verbose_name_plural": "System Settings",
                "ordering": ["type"],
            },
        ),
    ]
