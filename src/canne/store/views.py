"""Catalog and cart API views.

GET  /api/products/                         active products (optional ?tier=)
GET  /api/products/<slug>/                  one product
GET  /api/cart/                             cart summary
DELETE /api/cart/                           empty the cart
POST /api/cart/items/                       add a product
POST /api/cart/update/                      increase / decrease / remove a line
POST /api/admin/products/<id>/adjust-stock/ staff stock adjustment
"""

import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.http import JsonResponse

from canne.core.api import SERVICE, ApiView, parse_json, require_fields
from canne.core.exceptions import InvalidRequest, NotFound

from .cart import Cart
from .models import Product

logger = logging.getLogger(__name__)

CART_ACTIONS = ("increase", "decrease", "remove")


class ProductListView(ApiView):
    """List active products ordered by tier then name."""

    def get(self, request):
        products = Product.objects.filter(is_active=True).order_by("tier", "name")
        tier = request.GET.get("tier")
        if tier:
            products = products.filter(tier=tier)
        return JsonResponse({"products": [p.to_dict() for p in products]})


class ProductDetailView(ApiView):
    def get(self, request, slug):
        try:
            product = Product.objects.get(slug=slug, is_active=True)
        except Product.DoesNotExist:
            raise NotFound("Product not found")
        return JsonResponse({"product": product.to_dict()})


class CartView(ApiView):
    """Read or empty the session cart."""

    def get(self, request):
        return JsonResponse(Cart(request.session).summary())

    def delete(self, request):
        cart = Cart(request.session)
        cart.clear()
        return JsonResponse(cart.summary())


class CartItemsView(ApiView):
    """Add a product to the cart.

    POST /api/cart/items/
    {
        "product_id": "<uuid>",
        "quantity": 1
    }
    """

    def post(self, request):
        data = parse_json(request)
        require_fields(data, "product_id")
        quantity = _parse_quantity(data.get("quantity", 1))
        if quantity < 1:
            raise InvalidRequest("Quantity must be at least 1")

        product = _get_active_product(data["product_id"])
        cart = Cart(request.session)
        cart.add(product, quantity)
        return JsonResponse(cart.summary())


class CartUpdateView(ApiView):
    """Change one cart line.

    POST /api/cart/update/
    {
        "product_id": "<uuid>",
        "action": "increase" | "decrease" | "remove"
    }
    """

    def post(self, request):
        data = parse_json(request)
        require_fields(data, "product_id", "action")
        action = data["action"]
        if action not in CART_ACTIONS:
            raise InvalidRequest(f"Invalid action. Must be one of: {', '.join(CART_ACTIONS)}")

        product_id = str(data["product_id"])
        cart = Cart(request.session)
        if product_id not in cart:
            raise NotFound("Item not in cart")

        current = cart.quantity_of(product_id)
        if action == "increase":
            cart.set_quantity(product_id, current + 1)
        elif action == "decrease":
            cart.set_quantity(product_id, current - 1)
        else:
            cart.remove(product_id)

        return JsonResponse(cart.summary())


class AdjustStockView(ApiView):
    """Adjust a product's stock level.

    POST /api/admin/products/<id>/adjust-stock/
    {
        "adjustment": -2,
        "reason": "Damaged prints"
    }
    """

    credential_tier = SERVICE

    def post(self, request, product_id):
        data = parse_json(request)
        adjustment = data.get("adjustment")
        reason = (data.get("reason") or "").strip()
        if not adjustment or not reason:
            raise InvalidRequest("Adjustment amount and reason are required")
        if isinstance(adjustment, bool) or not isinstance(adjustment, int):
            raise InvalidRequest("Adjustment must be a whole number")

        with transaction.atomic():
            try:
                product = Product.objects.select_for_update().get(pk=product_id)
            except Product.DoesNotExist:
                raise NotFound("Product not found")

            new_stock = product.stock + adjustment
            if new_stock < 0 and not product.allow_backorder:
                raise InvalidRequest("Cannot reduce stock below zero unless backorder is enabled")

            old_stock = product.stock
            product.stock = new_stock
            if new_stock <= 0 and not product.allow_backorder:
                product.is_active = False
            elif new_stock > 0:
                product.is_active = True
            product.save(update_fields=["stock", "is_active", "updated_at"])

        logger.info(
            "Stock for %s adjusted %s -> %s (%s)",
            product.slug,
            old_stock,
            new_stock,
            reason,
        )
        return JsonResponse({
            "success": True,
            "message": "Stock adjusted successfully",
            "new_stock": new_stock,
            "is_active": product.is_active,
        })


def _parse_quantity(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidRequest("Quantity must be a whole number")


def _get_active_product(product_id) -> Product:
    try:
        return Product.objects.get(pk=product_id, is_active=True)
    except (Product.DoesNotExist, ValidationError, ValueError):
        raise NotFound("Product not found")
