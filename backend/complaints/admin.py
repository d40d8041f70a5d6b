from django.contrib import admin

from .models import Complaint, ComplaintAttachment, ComplaintHistory, NatureType


class ComplaintAttachmentInline(admin.TabularInline):
    model = ComplaintAttachment
    extra = 0
    readonly_fields = ("filename", "original_name", "mime_type", "size",
                       "url", "uploaded_by", "uploaded_at")


class ComplaintHistoryInline(admin.TabularInline):
    model = ComplaintHistory
    extra = 0
    can_delete = False
    readonly_fields = ("status", "assigned_from", "assigned_to", "department",
                       "changed_by", "notes", "timestamp")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Complaint)
class ComplaintAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "status", "department",
                    "current_assignee", "client", "created_at")
    list_filter = ("status", "department", "nature_type")
    search_fields = ("title", "description", "error_type")
    # Workflow fields change only through the workflow service.
    readonly_fields = ("status", "department", "current_assignee",
                       "first_assignee", "version")
    inlines = [ComplaintAttachmentInline, ComplaintHistoryInline]


@admin.register(NatureType)
class NatureTypeAdmin(admin.ModelAdmin):
    list_display = ("name", "is_active", "created_by", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name",)

    def save_model(self, request, obj, form, change):
        if not change and obj.created_by_id is None:
            obj.created_by = request.user
        super().save_model(request, obj, form, change)


@admin.register(ComplaintHistory)
class ComplaintHistoryAdmin(admin.ModelAdmin):
    list_display = ("complaint", "status", "assigned_from", "assigned_to",
                    "changed_by", "timestamp")
    list_filter = ("status",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
