from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "email", "role", "org_name",
                    "is_approved", "is_available", "is_active")
    search_fields = ("username", "email", "phone_number", "org_name")
    list_filter = ("role", "is_approved", "is_active", "is_available")
    filter_horizontal = ("groups", "user_permissions")
    raw_id_fields = ("linked_facility",)
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Rescue Profile", {"fields": (
            "role", "is_approved", "phone_number", "org_name",
            "registration_number", "address", "home_latitude",
            "home_longitude", "linked_facility", "vehicle_number",
            "is_available", "capacity",
        )}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Rescue Profile", {"fields": ("email", "role", "org_name",
                                       "phone_number", "linked_facility")}),
    )
