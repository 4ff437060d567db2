"""Catalog and cart URL patterns."""

from django.urls import path

from . import views

app_name = "store"

urlpatterns = [
    # Catalog
    path("products/", views.ProductListView.as_view(), name="product-list"),
    path("products/<slug:slug>/", views.ProductDetailView.as_view(), name="product-detail"),

    # Cart
    path("cart/", views.CartView.as_view(), name="cart"),
    path("cart/items/", views.CartItemsView.as_view(), name="cart-items"),
    path("cart/update/", views.CartUpdateView.as_view(), name="cart-update"),

    # Admin
    path(
        "admin/products/<uuid:product_id>/adjust-stock/",
        views.AdjustStockView.as_view(),
        name="adjust-stock",
    ),
]
