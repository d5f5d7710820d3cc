from django.contrib import admin

from apps.audit.models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    """
    Immutable audit log admin.
    """

    list_display = (
        "timestamp",
        "actor_email",
        "action",
        "target_entity",
        "target_id",
        "ip_address",
    )

    list_filter = (
        "action",
        "target_entity",
        "timestamp",
    )

    search_fields = (
        "actor__email",
        "target_entity",
        "target_id",
        "ip_address",
    )

    ordering = ("-timestamp",)
    date_hierarchy = "timestamp"

    readonly_fields = (
        "actor",
        "ip_address",
        "user_agent",
        "action",
        "target_entity",
        "target_id",
        "before_state",
        "after_state",
        "timestamp",
    )

    fieldsets = (
        ("Context", {
            "fields": (
                "actor",
                "ip_address",
                "user_agent",
            )
        }),
        ("Action", {
            "fields": (
                "action",
                "target_entity",
                "target_id",
            )
        }),
        ("Data", {
            "fields": (
                "before_state",
                "after_state",
            )
        }),
        ("Timing", {
            "fields": (
                "timestamp",
            )
        }),
    )

    # -----------------------------
    # Permissions (IMMUTABLE)
    # -----------------------------

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description="Actor")
    def actor_email(self, obj):
        if obj.actor:
            return obj.actor.email
        return "-"

    def get_actions(self, request):
        """
        Remove bulk delete.
        """
        actions = super().get_actions(request)
        actions.pop("delete_selected", None)
        return actions
