from django.contrib import admin

from .models import RescueCase, RescueStatusLog


class RescueStatusLogInline(admin.TabularInline):
    model = RescueStatusLog
    extra = 0
    can_delete = False
    readonly_fields = ("from_status", "to_status", "changed_by", "actor_label", "message", "created_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(RescueCase)
class RescueCaseAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "reporter",
        "status",
        "assigned_org",
        "assigned_facility",
        "assigned_carrier",
        "deposit_held",
        "deposit_returned",
        "created_at",
    )
    list_filter = ("status", "deposit_held", "deposit_returned")
    search_fields = ("description", "address", "reporter__username")
    readonly_fields = (
        "status",
        "version",
        "deposit_amount",
        "deposit_held",
        "deposit_returned",
        "accepted_at",
        "escalated_at",
        "assigned_at",
        "en_route_at",
        "picked_up_at",
        "delivered_at",
        "completed_at",
        "created_at",
        "updated_at",
    )
    inlines = [RescueStatusLogInline]


@admin.register(RescueStatusLog)
class RescueStatusLogAdmin(admin.ModelAdmin):
    list_display = ("case", "from_status", "to_status", "actor_label", "created_at")
    list_filter = ("to_status",)
    readonly_fields = ("case", "from_status", "to_status", "changed_by", "actor_label", "message", "created_at")
