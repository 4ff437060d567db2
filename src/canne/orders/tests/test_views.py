"""Tests for the order, driver and payout API endpoints."""

import re
import uuid
from datetime import timedelta
from unittest.mock import patch

import pytest
from django.db import DatabaseError
from django.urls import reverse
from django.utils import timezone

from canne.orders.models import CashAppOrder, Driver, DriverApplication, Order, Payout

Status = CashAppOrder.Status


def post_json(client, url, data=None):
    return client.post(url, data or {}, content_type="application/json")


# =============================================================================
# Cash App orders
# =============================================================================


@pytest.mark.django_db
class TestCreateOrderView:
    """Tests for POST /api/orders/create/"""

    def test_returns_short_code(self, client):
        response = post_json(client, reverse("orders:create"), {"amount_cents": 4500, "customer_phone": "202-555-0100"})

        assert response.status_code == 200
        short_code = response.json()["short_code"]
        assert re.match(r"^ORD-[A-Z0-9]{4}$", short_code)
        assert CashAppOrder.objects.get(short_code=short_code).status == Status.AWAITING_PAYMENT

    def test_invalid_amount(self, client):
        response = post_json(client, reverse("orders:create"), {"amount_cents": "lots"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid amount"}

    def test_database_error_is_400_with_message(self, client):
        with patch.object(CashAppOrder.objects, "create", side_effect=DatabaseError("permission denied for table cashapp_orders")):
            response = post_json(client, reverse("orders:create"), {"amount_cents": 4500})

        assert response.status_code == 400
        assert response.json()["error"] == "permission denied for table cashapp_orders"

    def test_unexpected_error_is_500(self, client):
        with patch("canne.orders.views.services.create_cashapp_order", side_effect=RuntimeError("boom")):
            response = post_json(client, reverse("orders:create"), {"amount_cents": 4500})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}

    def test_missing_configuration(self, client, settings):
        settings.STOREFRONT = {**settings.STOREFRONT, "PUBLIC_KEY": ""}

        response = post_json(client, reverse("orders:create"), {"amount_cents": 4500})

        assert response.status_code == 500
        assert response.json() == {"error": "Server configuration error"}
        assert not CashAppOrder.objects.exists()


@pytest.mark.django_db
class TestMarkPaidView:
    def test_mark_paid_twice(self, client, cashapp_order):
        url = reverse("orders:mark-paid")

        first = post_json(client, url, {"short_code": cashapp_order.short_code})
        second = post_json(client, url, {"short_code": cashapp_order.short_code})

        assert first.json() == {"ok": True}
        assert second.json() == {"ok": True}
        cashapp_order.refresh_from_db()
        assert cashapp_order.status == Status.PAID

    def test_missing_short_code(self, client):
        response = post_json(client, reverse("orders:mark-paid"))

        assert response.status_code == 400

    def test_unknown_short_code_is_ok(self, client):
        response = post_json(client, reverse("orders:mark-paid"), {"short_code": "ORD-ZZZZ"})

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert not CashAppOrder.objects.exists()


@pytest.mark.django_db
class TestSubmitPaymentView:
    def test_submit_payment(self, client, cashapp_order, django_capture_on_commit_callbacks):
        with patch("canne.orders.notifications.httpx.post") as mock_post, \
                django_capture_on_commit_callbacks(execute=True):
            response = post_json(client, reverse("orders:submit-payment"), {
                "short_code": cashapp_order.short_code,
                "cashapp_handle": "$jordan",
                "screenshot_url": "https://img.example.com/proof.png",
            })

        assert response.json() == {"ok": True}
        cashapp_order.refresh_from_db()
        assert cashapp_order.status == Status.VERIFYING
        assert cashapp_order.cashapp_handle == "$jordan"
        # No webhook configured in test settings
        mock_post.assert_not_called()


@pytest.mark.django_db
class TestCashAppOrderViews:
    def test_detail(self, client, cashapp_order):
        response = client.get(reverse("orders:cashapp-order-detail", args=[cashapp_order.short_code]))

        assert response.status_code == 200
        assert response.json()["amount_cents"] == 4500

    def test_detail_unknown(self, client, db):
        response = client.get(reverse("orders:cashapp-order-detail", args=["ORD-NOPE"]))

        assert response.status_code == 404

    def test_list_empty(self, client, db):
        response = client.get(reverse("orders:cashapp-order-list"))

        assert response.json() == {"orders": []}

    def test_list_newest_first(self, client, make_cashapp_order):
        old = make_cashapp_order(short_code="ORD-OLD1")
        CashAppOrder.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(hours=1))
        make_cashapp_order(short_code="ORD-NEW1")

        codes = [o["short_code"] for o in client.get(reverse("orders:cashapp-order-list")).json()["orders"]]

        assert codes == ["ORD-NEW1", "ORD-OLD1"]

    def test_list_filters(self, client, make_cashapp_order):
        make_cashapp_order(short_code="ORD-PND1", status=Status.AWAITING_PAYMENT, customer_phone="202-555-0001")
        make_cashapp_order(short_code="ORD-PND2", status=Status.PAID, customer_phone="202-555-0002")
        make_cashapp_order(short_code="ORD-DLV1", status=Status.DELIVERED, customer_phone="202-555-0003")

        response = client.get(reverse("orders:cashapp-order-list"), {"status": "pending", "search": "0002"})

        assert [o["short_code"] for o in response.json()["orders"]] == ["ORD-PND2"]


@pytest.mark.django_db
class TestChangeStatusView:
    def test_change_status(self, client, make_cashapp_order):
        order = make_cashapp_order(status=Status.VERIFYING)

        response = post_json(client, reverse("orders:change-status"), {
            "short_code": order.short_code,
            "new_status": "paid",
        })

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Order status changed from verifying to paid",
            "previous_status": "verifying",
            "new_status": "paid",
        }

    def test_invalid_transition(self, client, cashapp_order):
        response = post_json(client, reverse("orders:change-status"), {
            "short_code": cashapp_order.short_code,
            "new_status": "delivered",
        })

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid status transition from awaiting_payment to delivered"}

    def test_missing_fields(self, client, db):
        response = post_json(client, reverse("orders:change-status"), {"short_code": "ORD-AAAA"})

        assert response.status_code == 400
        assert response.json() == {"error": "Short code and new status are required"}

    def test_assign_without_driver_conflicts(self, client, make_cashapp_order):
        order = make_cashapp_order(status=Status.PAID)

        response = post_json(client, reverse("orders:change-status"), {
            "short_code": order.short_code,
            "new_status": "assigned",
        })

        assert response.status_code == 409

    def test_non_text_reason_is_400(self, client, cashapp_order):
        response = post_json(client, reverse("orders:change-status"), {
            "short_code": cashapp_order.short_code,
            "new_status": "canceled",
            "reason": 123,
        })

        assert response.status_code == 400
        assert response.json() == {"error": "Reason must be text"}


@pytest.mark.django_db
class TestBulkChangeStatusView:
    def test_bulk_change(self, client, make_cashapp_order):
        make_cashapp_order(short_code="ORD-BLK1", status=Status.VERIFYING)
        make_cashapp_order(short_code="ORD-BLK2", status=Status.VERIFYING)

        response = post_json(client, reverse("orders:bulk-change-status"), {
            "short_codes": ["ORD-BLK1", "ORD-BLK2"],
            "new_status": "canceled",
            "reason": "Duplicate orders",
            "admin_action": True,
        })

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Bulk status change completed. 2 successful, 0 failed."
        assert sorted(body["results"]["successful"]) == ["ORD-BLK1", "ORD-BLK2"]
        assert set(CashAppOrder.objects.values_list("status", flat=True)) == {Status.CANCELED}

    @pytest.mark.parametrize("payload", [
        {"new_status": "paid"},
        {"short_codes": [], "new_status": "paid"},
        {"short_codes": "ORD-BLK1", "new_status": "paid"},
        {"short_codes": ["ORD-BLK1"]},
    ])
    def test_requires_codes_and_status(self, client, payload):
        response = post_json(client, reverse("orders:bulk-change-status"), payload)

        assert response.status_code == 400
        assert response.json() == {"error": "Short codes array and new status are required"}

    def test_invalid_transition_is_400(self, client, make_cashapp_order):
        make_cashapp_order(short_code="ORD-BLK1", status=Status.AWAITING_PAYMENT)

        response = post_json(client, reverse("orders:bulk-change-status"), {
            "short_codes": ["ORD-BLK1"],
            "new_status": "delivered",
        })

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid transitions found for orders: ORD-BLK1"}

    def test_unknown_orders_are_404(self, client):
        response = post_json(client, reverse("orders:bulk-change-status"), {
            "short_codes": ["ORD-NONE"],
            "new_status": "paid",
        })

        assert response.status_code == 404


@pytest.mark.django_db
class TestCompleteAndAutoCancelViews:
    def test_complete(self, client, make_cashapp_order):
        order = make_cashapp_order(status=Status.ASSIGNED)

        response = post_json(client, reverse("orders:complete"), {"short_code": order.short_code})

        assert response.json() == {"success": True}

    def test_complete_runs_on_public_key(self, client, settings, make_cashapp_order):
        settings.STOREFRONT = {**settings.STOREFRONT, "SERVICE_ROLE_KEY": ""}
        order = make_cashapp_order(status=Status.ASSIGNED)

        response = post_json(client, reverse("orders:complete"), {"short_code": order.short_code})

        assert response.status_code == 200
        order.refresh_from_db()
        assert order.status == Status.DELIVERED

    def test_complete_unknown_short_code_is_ok(self, client):
        response = post_json(client, reverse("orders:complete"), {"short_code": "ORD-ZZZZ"})

        assert response.status_code == 200
        assert response.json() == {"success": True}

    def test_auto_cancel(self, client, make_cashapp_order):
        order = make_cashapp_order()
        CashAppOrder.objects.filter(pk=order.pk).update(created_at=timezone.now() - timedelta(minutes=16))

        response = post_json(client, reverse("orders:auto-cancel"))

        assert response.json() == {"message": "Auto-cancelled 1 orders", "cancelled": 1}

    def test_assign_driver(self, client, make_cashapp_order, driver):
        order = make_cashapp_order(status=Status.PAID)

        response = post_json(
            client,
            reverse("orders:assign-driver", args=[order.short_code]),
            {"driver_id": str(driver.pk)},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["order"]["driver_id"] == str(driver.pk)
        assert body["driver"]["full_name"] == "Ana Rivera"


# =============================================================================
# Checkout
# =============================================================================


@pytest.mark.django_db
class TestPlaceOrderView:
    def test_place_order_with_items(self, client, product, delivery_details):
        response = post_json(client, reverse("orders:place-order"), {
            "items": [{"product_id": str(product.pk), "quantity": 3}],
            "delivery_details": delivery_details,
        })

        assert response.status_code == 201
        body = response.json()
        assert body["subtotal"] == 45.0
        assert body["delivery_fee"] == 0.0
        assert body["total"] == 45.0
        assert re.match(r"^ORD-[A-Z0-9]{4}$", body["order_number"])

    def test_place_order_from_session_cart(self, client, product, delivery_details):
        post_json(client, reverse("store:cart-items"), {"product_id": str(product.pk), "quantity": 1})

        response = post_json(client, reverse("orders:place-order"), {"delivery_details": delivery_details})

        assert response.status_code == 201
        assert response.json()["total"] == 25.0
        assert client.get(reverse("store:cart")).json()["items"] == []

    def test_more_than_in_stock(self, client, product, delivery_details):
        response = post_json(client, reverse("orders:place-order"), {
            "items": [{"product_id": str(product.pk), "quantity": 500}],
            "delivery_details": delivery_details,
        })

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Insufficient stock for some items"
        assert body["insufficient_stock"][0]["available"] == 10
        product.refresh_from_db()
        assert (product.stock, product.is_active) == (10, True)
        assert not Order.objects.exists()

    def test_empty_session_cart(self, client, db, delivery_details):
        response = post_json(client, reverse("orders:place-order"), {"delivery_details": delivery_details})

        assert response.status_code == 400
        assert response.json() == {"error": "Cart is empty"}

    def test_zip_outside_delivery_area(self, client, product, delivery_details):
        delivery_details["zip_code"] = "22201"

        response = post_json(client, reverse("orders:place-order"), {
            "items": [{"product_id": str(product.pk)}],
            "delivery_details": delivery_details,
        })

        assert response.status_code == 400
        assert "zip_code" in response.json()["errors"]
        assert not Order.objects.exists()

    def test_name_and_phone_required(self, client, product, delivery_details):
        del delivery_details["name"]
        del delivery_details["phone"]

        response = post_json(client, reverse("orders:place-order"), {
            "items": [{"product_id": str(product.pk)}],
            "delivery_details": delivery_details,
        })

        assert response.status_code == 400
        assert set(response.json()["errors"]) == {"name", "phone"}

    def test_order_detail(self, client, product, delivery_details):
        created = post_json(client, reverse("orders:place-order"), {
            "items": [{"product_id": str(product.pk), "quantity": 1}],
            "delivery_details": delivery_details,
        }).json()

        response = client.get(reverse("orders:order-detail", args=[created["order_id"]]))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["items"][0]["product_name"] == "Morning Light"

    def test_order_detail_unknown(self, client, db):
        response = client.get(reverse("orders:order-detail", args=[uuid.uuid4()]))

        assert response.status_code == 404


# =============================================================================
# Admin listings and summaries
# =============================================================================


@pytest.mark.django_db
class TestListingViews:
    def test_drivers_empty(self, client):
        response = client.get(reverse("orders:driver-list"))

        assert response.status_code == 200
        assert response.json() == {"drivers": []}

    def test_drivers_newest_first(self, client, driver):
        newer = Driver.objects.create(full_name="Sam Ortiz", phone="202-555-0102", email="sam@example.com")

        names = [d["full_name"] for d in client.get(reverse("orders:driver-list")).json()["drivers"]]

        assert names == [newer.full_name, driver.full_name]

    def test_payouts_empty(self, client):
        response = client.get(reverse("orders:payout-list"))

        assert response.json() == {"payouts": []}

    def test_payouts_include_driver(self, client, driver):
        Payout.objects.create(driver=driver, amount_cents=800)

        payout = client.get(reverse("orders:payout-list")).json()["payouts"][0]

        assert payout["driver"]["email"] == "ana@example.com"

    def test_mark_payout_paid(self, client, driver):
        payout = Payout.objects.create(driver=driver, amount_cents=800)

        response = post_json(client, reverse("orders:payout-mark-paid"), {"payout_id": str(payout.pk)})

        assert response.json() == {"success": True}

    def test_mark_unknown_payout(self, client, db):
        response = post_json(client, reverse("orders:payout-mark-paid"), {"payout_id": str(uuid.uuid4())})

        assert response.status_code == 404


@pytest.mark.django_db
class TestAsapCountView:
    def _order(self, number, minutes_ago):
        order = Order.objects.create(order_number=number, customer_name="X", customer_phone="1")
        Order.objects.filter(pk=order.pk).update(created_at=timezone.now() - timedelta(minutes=minutes_ago))

    def test_counts_last_fifteen_minutes(self, client):
        self._order("ORD-AAA1", 14)
        self._order("ORD-AAA2", 16)

        response = client.get(reverse("orders:asap-count"))

        assert response.json() == {"count": 1}

    def test_empty(self, client):
        assert client.get(reverse("orders:asap-count")).json() == {"count": 0}

    def test_wrong_method_is_405(self, client):
        response = post_json(client, reverse("orders:asap-count"))

        assert response.status_code == 405

    def test_errors_are_swallowed(self, client):
        with patch("canne.orders.admin_views.services.count_recent_orders", side_effect=RuntimeError("boom")):
            response = client.get(reverse("orders:asap-count"))

        assert response.status_code == 200
        assert response.json() == {"count": 0}

    def test_missing_configuration_is_swallowed(self, client, settings):
        settings.STOREFRONT = {**settings.STOREFRONT, "SERVICE_ROLE_KEY": ""}

        response = client.get(reverse("orders:asap-count"))

        assert response.status_code == 200
        assert response.json() == {"count": 0}


@pytest.mark.django_db
class TestSummaryViews:
    def test_tab_counts(self, client, make_cashapp_order):
        make_cashapp_order(status=Status.ASSIGNED)

        response = client.get(reverse("orders:tab-counts"))

        assert response.json() == {"pending": 0, "assigned": 1, "delivered": 0, "issue": 0}

    def test_tab_counts_swallow_errors(self, client):
        with patch("canne.orders.admin_views.services.tab_counts", side_effect=DatabaseError("down")):
            response = client.get(reverse("orders:tab-counts"))

        assert response.status_code == 200
        assert response.json() == {"pending": 0, "assigned": 0, "delivered": 0, "issue": 0}

    def test_kpi(self, client, make_cashapp_order):
        make_cashapp_order(status=Status.DELIVERED, amount_cents=2500)

        body = client.get(reverse("orders:kpi")).json()

        assert body["revenue"] == 2500
        assert body["orders"] == 1


# =============================================================================
# Driver management
# =============================================================================


@pytest.mark.django_db
class TestAdminDriverViews:
    def test_create(self, client):
        response = post_json(client, reverse("orders:admin-drivers"), {
            "full_name": "Sam Ortiz",
            "phone": "202-555-0102",
            "email": "sam@example.com",
        })

        assert response.status_code == 201
        assert response.json()["driver"]["full_name"] == "Sam Ortiz"

    def test_create_requires_fields(self, client):
        response = post_json(client, reverse("orders:admin-drivers"), {"full_name": "Sam"})

        assert response.status_code == 400
        assert set(response.json()["errors"]) == {"phone", "email"}

    def test_create_duplicate(self, client, driver):
        response = post_json(client, reverse("orders:admin-drivers"), {
            "full_name": "Someone",
            "phone": driver.phone,
            "email": "someone@example.com",
        })

        assert response.status_code == 409

    def test_search(self, client, driver):
        response = client.get(reverse("orders:admin-drivers"), {"search": "ana", "active": "true"})

        assert [d["id"] for d in response.json()["drivers"]] == [str(driver.pk)]

    def test_patch(self, client, driver):
        response = client.patch(
            reverse("orders:admin-driver-detail", args=[driver.pk]),
            {"is_active": False},
            content_type="application/json",
        )

        assert response.status_code == 200
        assert response.json()["driver"]["is_active"] is False

    def test_patch_validates_fields(self, client, driver):
        response = client.patch(
            reverse("orders:admin-driver-detail", args=[driver.pk]),
            {"full_name": "", "email": "not-an-email"},
            content_type="application/json",
        )

        assert response.status_code == 400
        assert set(response.json()["errors"]) == {"full_name", "email"}
        driver.refresh_from_db()
        assert (driver.full_name, driver.email) == ("Ana Rivera", "ana@example.com")

    def test_patch_null_phone_is_400_not_conflict(self, client, driver):
        response = client.patch(
            reverse("orders:admin-driver-detail", args=[driver.pk]),
            {"phone": None},
            content_type="application/json",
        )

        assert response.status_code == 400
        assert "phone" in response.json()["errors"]

    def test_patch_keeps_omitted_fields(self, client, driver):
        response = client.patch(
            reverse("orders:admin-driver-detail", args=[driver.pk]),
            {"email": "ana.rivera@example.com"},
            content_type="application/json",
        )

        assert response.status_code == 200
        body = response.json()["driver"]
        assert body["email"] == "ana.rivera@example.com"
        assert body["phone"] == "202-555-0101"

    def test_delete(self, client, driver):
        response = client.delete(reverse("orders:admin-driver-detail", args=[driver.pk]))

        assert response.json() == {"success": True}
        assert not Driver.objects.exists()

    def test_get_unknown(self, client, db):
        response = client.get(reverse("orders:admin-driver-detail", args=[uuid.uuid4()]))

        assert response.status_code == 404

    def test_payout(self, client, driver):
        response = post_json(client, reverse("orders:driver-payout", args=[driver.pk]), {"amount_cents": 1200})

        assert response.status_code == 200
        assert response.json()["message"] == "Payout of $12.00 processed successfully"

    def test_payout_invalid_amount(self, client, driver):
        response = post_json(client, reverse("orders:driver-payout", args=[driver.pk]), {"amount_cents": 0})

        assert response.status_code == 400


@pytest.mark.django_db
class TestDriverApplicationView:
    def _payload(self, **overrides):
        payload = {
            "name": "Casey Morgan",
            "phone": "(202) 555-0177",
            "email": "casey@example.com",
            "availability": ["weekday_evenings", "weekends"],
            "vehicle_type": "car",
        }
        payload.update(overrides)
        return payload

    def test_apply(self, client):
        response = post_json(client, reverse("orders:driver-apply"), self._payload())

        assert response.status_code == 200
        body = response.json()
        application = DriverApplication.objects.get(pk=body["application_id"])
        assert application.availability == ["weekday_evenings", "weekends"]
        assert application.status == DriverApplication.Status.NEW

    def test_duplicate_application(self, client):
        post_json(client, reverse("orders:driver-apply"), self._payload())

        response = post_json(client, reverse("orders:driver-apply"), self._payload(phone="202-555-0178"))

        assert response.status_code == 409

    @pytest.mark.parametrize("field,value", [
        ("name", "C"),
        ("phone", "555"),
        ("email", "not-an-email"),
        ("availability", []),
        ("about", "x" * 501),
    ])
    def test_validation(self, client, field, value):
        response = post_json(client, reverse("orders:driver-apply"), self._payload(**{field: value}))

        assert response.status_code == 400
        assert field in response.json()["errors"]
