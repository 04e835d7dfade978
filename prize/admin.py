from django.contrib import admin

from .models import Prize, Store


@admin.register(Store)
class StoreAdmin(admin.ModelAdmin):
    list_display = ("name", "campaign", "is_active", "created_at")
    list_filter = ("campaign", "is_active")
    search_fields = ("name", "campaign")
    ordering = ("name",)


@admin.register(Prize)
class PrizeAdmin(admin.ModelAdmin):
    list_display = ("name", "store", "initial_stock", "available_stock")
    list_filter = ("store__campaign",)
    search_fields = ("name", "store__name")
    ordering = ("name",)
    readonly_fields = ("available_stock",)

    def get_readonly_fields(self, request, obj=None):
        if obj is not None:
            return ("initial_stock", "available_stock")
        return self.readonly_fields

    def save_model(self, request, obj, form, change):
        if change:
            # Stock columns belong to the allocation engine; never write back a stale read.
            obj.save(update_fields=["store", "name", "description", "updated_at"])
            return
        obj.available_stock = obj.initial_stock
        super().save_model(request, obj, form, change)
