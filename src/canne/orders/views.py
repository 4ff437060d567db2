"""Customer-facing order API views.

POST /api/orders/create/             start a Cash App order
POST /api/orders/mark-paid/          mark a Cash App order paid
POST /api/orders/submit-payment/     submit Cash App payment proof
POST /api/orders/complete/           driver marks a Cash App order delivered
GET  /api/cashapp-orders/<code>/     read one Cash App order
POST /api/place-order/               check out the cart for delivery
GET  /api/orders/<uuid>/             read a placed order
POST /api/drivers/apply/             driver signup form
"""

from django.http import JsonResponse

from canne.core.api import ApiView, parse_json, require_fields
from canne.core.exceptions import InvalidRequest
from canne.store.cart import Cart

from . import services
from .forms import DeliveryDetailsForm, DriverApplicationForm, validate_form


class CreateCashAppOrderView(ApiView):
    """Create a Cash App order.

    POST /api/orders/create/
    {
        "amount_cents": 4500,
        "customer_phone": "202-555-0134"
    }

    Returns {"short_code": "ORD-7K2Q"}.
    """

    def post(self, request):
        data = parse_json(request)
        order = services.create_cashapp_order(
            data.get("amount_cents"),
            customer_phone=data.get("customer_phone") or "",
        )
        return JsonResponse({"short_code": order.short_code})


class MarkPaidView(ApiView):
    def post(self, request):
        data = parse_json(request)
        require_fields(data, "short_code")
        services.mark_paid(data["short_code"])
        return JsonResponse({"ok": True})


class SubmitPaymentView(ApiView):
    """Attach payment proof and move the order to verifying.

    POST /api/orders/submit-payment/
    {
        "short_code": "ORD-7K2Q",
        "cashapp_handle": "$someone",
        "screenshot_url": "https://..."
    }
    """

    def post(self, request):
        data = parse_json(request)
        require_fields(data, "short_code")
        services.submit_payment(
            data["short_code"],
            cashapp_handle=data.get("cashapp_handle") or "",
            screenshot_url=data.get("screenshot_url") or "",
        )
        return JsonResponse({"ok": True})


class CompleteOrderView(ApiView):
    """Mark an order delivered from the driver flow.

    POST /api/orders/complete/ {"short_code": "ORD-7K2Q"}
    """

    def post(self, request):
        data = parse_json(request)
        require_fields(data, "short_code")
        services.complete_order(data["short_code"])
        return JsonResponse({"success": True})


class CashAppOrderDetailView(ApiView):
    def get(self, request, short_code):
        order = services.get_cashapp_order(short_code)
        return JsonResponse(order.to_dict())


class PlaceOrderView(ApiView):
    """Check out for delivery.

    POST /api/place-order/
    {
        "items": [{"product_id": "<uuid>", "quantity": 2}],
        "delivery_details": {
            "name": "...", "phone": "...", "address": "...",
            "city": "Washington", "zip_code": "20001"
        }
    }

    When ``items`` is omitted the session cart is used and emptied on
    success.
    """

    def post(self, request):
        data = parse_json(request)
        details = data.get("delivery_details") or {}
        if not isinstance(details, dict):
            raise InvalidRequest("delivery_details must be an object")
        delivery = validate_form(DeliveryDetailsForm(details))

        cart = None
        items = data.get("items")
        if items is None:
            cart = Cart(request.session)
            items = [
                {"product_id": str(line.product.pk), "quantity": line.quantity}
                for line in cart.lines()
            ]

        order = services.place_order(items, delivery)
        if cart is not None:
            cart.clear()

        return JsonResponse(
            {
                "success": True,
                "order_id": str(order.pk),
                "order_number": order.order_number,
                "subtotal": float(order.subtotal),
                "delivery_fee": float(order.delivery_fee),
                "total": float(order.total),
            },
            status=201,
        )


class OrderDetailView(ApiView):
    def get(self, request, order_id):
        order = services.get_order(order_id)
        return JsonResponse({"success": True, **order.to_dict()})


class DriverApplicationView(ApiView):
    """Accept a driver application.

    POST /api/drivers/apply/
    {
        "name": "...", "phone": "202-555-0100", "email": "...",
        "availability": ["weekday_evenings"],
        "vehicle_type": "car", "cashapp_handle": "$me", "about": "..."
    }
    """

    def post(self, request):
        data = parse_json(request)
        cleaned = validate_form(DriverApplicationForm(data))
        application = services.submit_driver_application(cleaned)
        return JsonResponse({
            "success": True,
            "message": "Application submitted successfully",
            "application_id": str(application.pk),
        })
