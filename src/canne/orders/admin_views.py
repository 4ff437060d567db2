"""Staff API views.

All of these run under the service-role credential tier. Summary views
(ASAP count, tab counts, KPI) never report errors; they fall back to
zero values instead.
"""

from django.http import JsonResponse

from canne.core.api import SERVICE, ApiView, parse_json, require_fields
from canne.core.exceptions import InvalidRequest

from . import services
from .forms import DriverForm, validate_form


class AdminView(ApiView):
    credential_tier = SERVICE


# =============================================================================
# Cash App order lifecycle
# =============================================================================


class CashAppOrderListView(AdminView):
    """List Cash App orders.

    GET /api/cashapp-orders/?status=pending&search=202
    """

    def get(self, request):
        orders = services.list_cashapp_orders(
            status=request.GET.get("status", "").strip(),
            search=request.GET.get("search", "").strip(),
        )
        return JsonResponse({"orders": [o.to_dict() for o in orders]})


class ChangeStatusView(AdminView):
    """Move a Cash App order to a new status.

    POST /api/orders/change-status/
    {
        "short_code": "ORD-7K2Q",
        "new_status": "refunded",
        "reason": "Customer changed their mind",
        "admin_action": true
    }
    """

    def post(self, request):
        data = parse_json(request)
        if not data.get("short_code") or not data.get("new_status"):
            raise InvalidRequest("Short code and new status are required")

        new_status = data["new_status"]
        previous = services.change_status(
            data["short_code"],
            new_status,
            reason=data.get("reason") or "",
            admin_action=bool(data.get("admin_action")),
        )
        return JsonResponse({
            "success": True,
            "message": f"Order status changed from {previous} to {new_status}",
            "previous_status": previous,
            "new_status": new_status,
        })


class BulkChangeStatusView(AdminView):
    """Move several Cash App orders to one status.

    POST /api/orders/bulk-change-status/
    {
        "short_codes": ["ORD-7K2Q", "ORD-A1B2"],
        "new_status": "canceled",
        "reason": "Duplicate orders",
        "admin_action": true
    }
    """

    def post(self, request):
        data = parse_json(request)
        short_codes = data.get("short_codes")
        if (
            not isinstance(short_codes, list)
            or not short_codes
            or not all(isinstance(code, str) and code for code in short_codes)
            or not data.get("new_status")
        ):
            raise InvalidRequest("Short codes array and new status are required")

        results = services.bulk_change_status(
            short_codes,
            data["new_status"],
            reason=data.get("reason") or "",
            admin_action=bool(data.get("admin_action")),
        )
        return JsonResponse({
            "success": True,
            "message": (
                f"Bulk status change completed. {len(results['successful'])} successful, "
                f"{len(results['failed'])} failed."
            ),
            "results": results,
        })


class AutoCancelView(AdminView):
    def post(self, request):
        cancelled = services.auto_cancel_stale_orders()
        return JsonResponse({
            "message": f"Auto-cancelled {cancelled} orders",
            "cancelled": cancelled,
        })


class AssignDriverView(AdminView):
    def post(self, request, short_code):
        data = parse_json(request)
        require_fields(data, "driver_id")
        order, driver = services.assign_driver(short_code, data["driver_id"])
        return JsonResponse({
            "success": True,
            "order": order.to_dict(),
            "driver": driver.to_dict(),
        })


# =============================================================================
# Summaries
# =============================================================================


class AsapCountView(AdminView):
    """Orders created within the last ASAP window."""

    fallback = {"count": 0}

    def get(self, request):
        return JsonResponse({"count": services.count_recent_orders()})


class TabCountsView(AdminView):
    fallback = {key: 0 for key in services.STATUS_GROUPS}

    def get(self, request):
        return JsonResponse(services.tab_counts())


class KpiView(AdminView):
    fallback = {"revenue": 0, "orders": 0, "pending": 0, "p90": None}

    def get(self, request):
        return JsonResponse(services.kpi_summary())


# =============================================================================
# Drivers and payouts
# =============================================================================


class DriverListView(AdminView):
    def get(self, request):
        return JsonResponse({"drivers": [d.to_dict() for d in services.list_drivers()]})


class AdminDriversView(AdminView):
    """Search and create drivers.

    GET  /api/admin/drivers/?search=ana&active=true
    POST /api/admin/drivers/ {"full_name", "phone", "email"}
    """

    def get(self, request):
        active = request.GET.get("active")
        if active in ("true", "false"):
            active = active == "true"
        else:
            active = None
        drivers = services.list_drivers(search=request.GET.get("search", "").strip(), active=active)
        return JsonResponse({"drivers": [d.to_dict() for d in drivers]})

    def post(self, request):
        data = parse_json(request)
        cleaned = validate_form(DriverForm(data))
        driver = services.create_driver(**cleaned)
        return JsonResponse({"driver": driver.to_dict()}, status=201)


class AdminDriverDetailView(AdminView):
    def get(self, request, driver_id):
        return JsonResponse({"driver": services.get_driver(driver_id).to_dict()})

    def patch(self, request, driver_id):
        data = parse_json(request)
        driver = services.get_driver(driver_id)

        # Validate the merged record so omitted fields keep their values.
        current = {"full_name": driver.full_name, "phone": driver.phone, "email": driver.email}
        supplied = {k: v for k, v in data.items() if k in current}
        cleaned = validate_form(DriverForm({**current, **supplied}))

        changes = {k: cleaned[k] for k in supplied}
        if "is_active" in data:
            changes["is_active"] = data["is_active"]
        driver = services.update_driver(driver_id, changes)
        return JsonResponse({"driver": driver.to_dict()})

    def delete(self, request, driver_id):
        services.delete_driver(driver_id)
        return JsonResponse({"success": True})


class DriverPayoutView(AdminView):
    def post(self, request, driver_id):
        data = parse_json(request)
        amount_cents = data.get("amount_cents")
        payout = services.process_driver_payout(driver_id, amount_cents)
        return JsonResponse({
            "payout": payout.to_dict(),
            "message": f"Payout of ${amount_cents / 100:.2f} processed successfully",
        })


class PayoutListView(AdminView):
    def get(self, request):
        return JsonResponse({"payouts": services.list_payouts()})


class MarkPayoutPaidView(AdminView):
    def post(self, request):
        data = parse_json(request)
        require_fields(data, "payout_id")
        services.mark_payout_paid(data["payout_id"])
        return JsonResponse({"success": True})
