"""
Core app models.

Provides abstract base models and the singleton-per-type system settings
rows shared across apps.
"""

from django.db import models


class TimeStampedModel(models.Model):
    """
    Abstract base model that provides self-updating ``created_at`` and
    ``updated_at`` timestamp fields for every concrete child model.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Created At",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name="Updated At",
    )

    class Meta:
        abstract = True


class SettingsType(models.TextChoices):
    SYSTEM = "system", "System"
    WHATSAPP = "whatsapp", "WhatsApp"
    EMAIL = "email", "Email"


class RoutingPolicy(models.TextChoices):
    RANDOM = "random", "Random"
    ROUND_ROBIN = "round_robin", "Round Robin"
    LEAST_LOADED = "least_loaded", "Least Loaded"


class SystemSettings(TimeStampedModel):
    """
    Operator-editable configuration, one row per ``type``.

    The ``system`` row carries the auto-routing configuration consumed by
    ``complaints.routing.RoutingConfig.load()``.  Channel rows
    (``whatsapp`` / ``email``) only toggle whether the channel is enabled
    at runtime; credentials stay in Django settings.
    """

    type = models.CharField(
        max_length=20,
        choices=SettingsType.choices,
        unique=True,
        verbose_name="Settings Type",
    )
    is_enabled = models.BooleanField(
        default=True,
        verbose_name="Enabled",
    )

    # ── Auto-routing (system row only) ──────────────────────────────
    auto_routing_enabled = models.BooleanField(
        default=False,
        verbose_name="Auto-routing Enabled",
        help_text="Distribute new complaints among the selected departments.",
    )
    auto_routing_departments = models.ManyToManyField(
        "accounts.Department",
        blank=True,
        related_name="+",
        verbose_name="Auto-routing Departments",
    )
    default_department = models.ForeignKey(
        "accounts.Department",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        verbose_name="Default Department",
        help_text="Used when auto-routing is off or no candidate is active.",
    )
    routing_policy = models.CharField(
        max_length=20,
        choices=RoutingPolicy.choices,
        default=RoutingPolicy.RANDOM,
        verbose_name="Routing Policy",
    )

    class Meta:
        verbose_name = "System Settings"
        verbose_name_plural = "System Settings"
        ordering = ["type"]

    def __str__(self):
        return f"Settings [{self.type}]"

    @classmethod
    def ensure_system_settings(cls) -> "SystemSettings":
        """Return the ``system`` row, creating it with defaults if absent."""
        obj, _ = cls.objects.get_or_create(type=SettingsType.SYSTEM)
        return obj

    @classmethod
    def channel_enabled(cls, channel: str) -> bool:
        """
        A channel is enabled unless an operator has stored a row for it
        with ``is_enabled=False``.
        """
        row = cls.objects.filter(type=channel).only("is_enabled").first()
        return True if row is None else row.is_enabled
