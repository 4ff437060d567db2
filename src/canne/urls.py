"""URL configuration for the Cannè storefront."""

from django.contrib import admin
from django.urls import include, path

from canne.core.views import health_check

urlpatterns = [
    # Health check
    path("health/", health_check, name="health_check"),

    # Django admin
    path("admin/", admin.site.urls),

    # JSON API
    path("api/", include("canne.store.urls", namespace="store")),
    path("api/", include("canne.orders.urls", namespace="orders")),
]
