from django.contrib import admin

from .models import Referral


@admin.register(Referral)
class ReferralAdmin(admin.ModelAdmin):
    list_display = ("id", "partner", "patient", "commission_amount", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("partner__email", "patient__email")
    readonly_fields = ("created_at",)
