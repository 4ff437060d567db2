from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "tier", "gift_size", "price", "stock", "is_active")
    list_filter = ("tier", "is_active", "has_delivery")
    search_fields = ("name", "slug", "description")
    prepopulated_fields = {"slug": ("name",)}
