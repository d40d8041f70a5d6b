from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import Department, User


@admin.register(Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ("name", "manager", "default_assignee", "is_active")
    search_fields = ("name",)
    list_filter = ("is_active",)
    raw_id_fields = ("manager", "default_assignee")


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "email", "phone_number",
                    "first_name", "last_name", "is_active", "role", "department")
    search_fields = ("username", "email", "phone_number")
    list_filter = ("is_active", "is_staff", "role", "department")
    filter_horizontal = ("groups", "user_permissions")
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Complaint Workflow", {"fields": ("role", "department", "phone_number")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Complaint Workflow", {"fields": ("email", "phone_number",
                                           "first_name", "last_name",
                                           "role", "department")}),
    )
