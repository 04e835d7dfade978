from django.contrib import admin

from .models import ClaimRecord


@admin.register(ClaimRecord)
class ClaimRecordAdmin(admin.ModelAdmin):
    list_display = ("created_at", "campaign", "display_name", "status", "store", "prize")
    list_filter = ("campaign", "status")
    search_fields = ("national_id", "phone_number", "voucher_number", "display_name")
    ordering = ("-created_at",)
    list_select_related = ("store", "prize")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
