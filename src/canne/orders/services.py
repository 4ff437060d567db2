"""Order, driver and payout business logic.

Views call into this module; nothing here knows about HTTP. Expected
failures raise StorefrontError subclasses, database errors propagate
unchanged so the API layer can report them.
"""

import logging
import uuid
from datetime import timedelta

from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import ProtectedError, Q, Sum
from django.utils import timezone

from canne.core.conf import get_setting
from canne.core.exceptions import Conflict, InvalidRequest, InvalidTransition, NotFound, StorefrontError
from canne.store.models import Product
from canne.store.pricing import calculate_delivery, cart_subtotal

from .codes import create_with_short_code
from .models import CashAppOrder, Driver, DriverApplication, Order, OrderItem, OrderStatusEvent, Payout
from .notifications import notify_bulk_status_change, notify_payment_submitted, notify_status_change

logger = logging.getLogger(__name__)

Status = CashAppOrder.Status

VALID_TRANSITIONS = {
    Status.AWAITING_PAYMENT: (Status.VERIFYING, Status.PAID, Status.CANCELED),
    Status.VERIFYING: (Status.AWAITING_PAYMENT, Status.PAID, Status.REFUNDED, Status.CANCELED),
    Status.PAID: (Status.VERIFYING, Status.ASSIGNED, Status.REFUNDED, Status.CANCELED),
    Status.ASSIGNED: (Status.PAID, Status.DELIVERED, Status.UNDELIVERED, Status.REFUNDED, Status.CANCELED),
    Status.DELIVERED: (Status.ASSIGNED, Status.REFUNDED),
    Status.UNDELIVERED: (Status.ASSIGNED, Status.DELIVERED, Status.REFUNDED, Status.CANCELED),
    Status.REFUNDED: (Status.VERIFYING, Status.PAID),
    Status.CANCELED: (Status.AWAITING_PAYMENT, Status.VERIFYING),
}

REASON_REQUIRED = (Status.UNDELIVERED, Status.REFUNDED, Status.CANCELED)

STATUS_GROUPS = {
    "pending": (Status.AWAITING_PAYMENT, Status.VERIFYING, Status.PAID),
    "assigned": (Status.ASSIGNED,),
    "delivered": (Status.DELIVERED,),
    "issue": (Status.UNDELIVERED, Status.REFUNDED, Status.CANCELED),
}


# =============================================================================
# Cash App orders
# =============================================================================


def create_cashapp_order(amount_cents, customer_phone: str = "") -> CashAppOrder:
    """Create a Cash App order awaiting payment.

    Args:
        amount_cents: Amount owed, a positive whole number of cents
        customer_phone: Customer contact number

    Returns:
        The new CashAppOrder with its generated short code

    Raises:
        InvalidRequest: Amount missing or not a positive integer
        ShortCodeExhausted: No free short code could be found
    """
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
        raise InvalidRequest("Invalid amount")

    now = timezone.now()
    order = create_with_short_code(
        CashAppOrder,
        "short_code",
        amount_cents=amount_cents,
        customer_phone=customer_phone or "",
        status=Status.AWAITING_PAYMENT,
        expires_at=now + timedelta(minutes=get_setting("PAYMENT_WINDOW_MINUTES")),
        created_at=now,
    )
    logger.info("Created Cash App order %s for %d cents", order.short_code, amount_cents)
    return order


def get_cashapp_order(short_code: str, for_update: bool = False) -> CashAppOrder:
    queryset = CashAppOrder.objects.all()
    if for_update:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(short_code=short_code)
    except CashAppOrder.DoesNotExist:
        raise NotFound("Order not found")


def list_cashapp_orders(status: str = "", search: str = ""):
    """Cash App orders newest first.

    Args:
        status: A tab group name (pending, assigned, delivered, issue), a
            single status, or "all"/empty for everything
        search: Matched against short code and customer phone
    """
    orders = CashAppOrder.objects.order_by("-created_at")
    if status and status != "all":
        group = status.lower()
        if group in STATUS_GROUPS:
            orders = orders.filter(status__in=STATUS_GROUPS[group])
        else:
            orders = orders.filter(status=group)
    if search:
        orders = orders.filter(Q(short_code__icontains=search) | Q(customer_phone__icontains=search))
    return orders


def _record_event(order, from_status, to_status, reason="", admin_action=False):
    return OrderStatusEvent.objects.create(
        order=order,
        from_status=from_status,
        to_status=to_status,
        reason=reason or "",
        admin_action=admin_action,
    )


@transaction.atomic
def mark_paid(short_code: str) -> CashAppOrder | None:
    """Mark an order paid.

    Unknown short codes and already-paid orders are a no-op.
    """
    order = CashAppOrder.objects.select_for_update().filter(short_code=short_code).first()
    if order is None:
        logger.warning("Mark paid for unknown order %s ignored", short_code)
        return None
    if order.status == Status.PAID:
        return order

    previous = order.status
    order.status = Status.PAID
    order.save(update_fields=["status", "updated_at"])
    _record_event(order, previous, Status.PAID)
    logger.info("Order %s marked paid (was %s)", short_code, previous)
    return order


@transaction.atomic
def submit_payment(short_code: str, cashapp_handle: str = "", screenshot_url: str = "") -> CashAppOrder:
    """Record the customer's payment proof and queue the order for verification.

    Staff are notified once the transaction commits.
    """
    order = get_cashapp_order(short_code, for_update=True)
    previous = order.status

    order.status = Status.VERIFYING
    order.cashapp_handle = cashapp_handle or ""
    order.screenshot_url = screenshot_url or ""
    order.save(update_fields=["status", "cashapp_handle", "screenshot_url", "updated_at"])
    _record_event(order, previous, Status.VERIFYING)

    transaction.on_commit(lambda: notify_payment_submitted(order))
    return order


def _apply_payout_side_effects(order, current, new_status, reason):
    if current == Status.PAID and new_status == Status.ASSIGNED and order.driver_id:
        if not Payout.objects.filter(order=order).exists():
            Payout.objects.create(
                order=order,
                driver_id=order.driver_id,
                amount_cents=get_setting("DRIVER_BASE_PAYOUT_CENTS"),
                status=Payout.Status.QUEUED,
            )

    if current == Status.DELIVERED and new_status == Status.REFUNDED:
        Payout.objects.filter(order=order, status=Payout.Status.QUEUED).update(
            status=Payout.Status.BLOCKED,
            blocked_reason=reason or "Order refunded",
            updated_at=timezone.now(),
        )

    if current in (Status.PAID, Status.ASSIGNED) and new_status in (Status.REFUNDED, Status.CANCELED):
        Payout.objects.filter(order=order, status=Payout.Status.QUEUED).update(
            status=Payout.Status.REVERTED,
            blocked_reason=reason or f"Order {new_status}",
            updated_at=timezone.now(),
        )


def _clean_reason(new_status, reason) -> str:
    if new_status not in Status.values:
        raise InvalidRequest(f"Invalid status: {new_status}")
    if reason is None:
        reason = ""
    if not isinstance(reason, str):
        raise InvalidRequest("Reason must be text")

    reason = reason.strip()
    if new_status in REASON_REQUIRED and not reason:
        raise InvalidRequest(f"Reason is required for status: {new_status}")
    return reason


def _transition(order, new_status, reason, admin_action) -> str:
    current = order.status
    if new_status not in VALID_TRANSITIONS.get(current, ()):
        raise InvalidTransition(f"Invalid status transition from {current} to {new_status}")
    if new_status == Status.ASSIGNED and not order.driver_id:
        raise Conflict("Order must have a driver before it can be assigned")

    _apply_payout_side_effects(order, current, new_status, reason)

    order.status = new_status
    update_fields = ["status", "updated_at"]
    if reason:
        order.admin_notes = reason
        update_fields.append("admin_notes")
    order.save(update_fields=update_fields)
    _record_event(order, current, new_status, reason, admin_action)

    logger.info("Order %s status %s -> %s", order.short_code, current, new_status)
    return current


@transaction.atomic
def change_status(short_code: str, new_status: str, reason: str = "", admin_action: bool = False) -> str:
    """Move an order along the status lifecycle.

    Args:
        short_code: Order short code
        new_status: Target status
        reason: Why; required for undelivered, refunded and canceled
        admin_action: Whether staff made the change

    Returns:
        The status the order had before the change

    Raises:
        InvalidRequest: Unknown status or missing reason
        NotFound: No order with this short code
        InvalidTransition: The lifecycle does not allow this move
        Conflict: Assigning an order that has no driver
    """
    reason = _clean_reason(new_status, reason)
    order = get_cashapp_order(short_code, for_update=True)
    current = _transition(order, new_status, reason, admin_action)

    transaction.on_commit(lambda: notify_status_change(order, current, new_status, reason))
    return current


@transaction.atomic
def bulk_change_status(short_codes: list, new_status: str, reason: str = "", admin_action: bool = False) -> dict:
    """Move several orders to the same status.

    Every found order must allow the transition, otherwise nothing changes.
    Each order then gets the same side effects and audit event as a single
    change; per-order failures are reported instead of raised.

    Returns:
        {"successful": [short codes], "failed": [{"short_code", "error"}]}

    Raises:
        InvalidRequest: Unknown status or missing reason
        NotFound: None of the short codes exist
        InvalidTransition: At least one order cannot make the move
    """
    reason = _clean_reason(new_status, reason)
    short_codes = list(dict.fromkeys(short_codes))

    orders = list(
        CashAppOrder.objects.select_for_update()
        .filter(short_code__in=short_codes)
        .order_by("created_at")
    )
    if not orders:
        raise NotFound("Orders not found")

    invalid = [o.short_code for o in orders if new_status not in VALID_TRANSITIONS.get(o.status, ())]
    if invalid:
        raise InvalidTransition(f"Invalid transitions found for orders: {', '.join(invalid)}")

    found = {o.short_code for o in orders}
    successful = []
    failed = [{"short_code": code, "error": "Order not found"} for code in short_codes if code not in found]
    for order in orders:
        try:
            with transaction.atomic():
                _transition(order, new_status, reason, admin_action)
        except StorefrontError as e:
            failed.append({"short_code": order.short_code, "error": e.message})
        else:
            successful.append(order.short_code)

    if successful:
        transaction.on_commit(lambda: notify_bulk_status_change(successful, new_status, reason))
    return {"successful": successful, "failed": failed}


@transaction.atomic
def complete_order(short_code: str) -> CashAppOrder | None:
    """Mark an order delivered from the driver flow.

    Unknown short codes are a no-op.
    """
    order = CashAppOrder.objects.select_for_update().filter(short_code=short_code).first()
    if order is None:
        logger.warning("Complete for unknown order %s ignored", short_code)
        return None
    previous = order.status
    if previous == Status.DELIVERED:
        return order

    order.status = Status.DELIVERED
    order.save(update_fields=["status", "updated_at"])
    _record_event(order, previous, Status.DELIVERED)
    transaction.on_commit(lambda: notify_status_change(order, previous, Status.DELIVERED))
    return order


@transaction.atomic
def assign_driver(short_code: str, driver_id) -> tuple[CashAppOrder, Driver]:
    """Attach a driver to an order without changing its status.

    Raises:
        NotFound: Unknown order or driver
        Conflict: Driver is inactive
    """
    order = get_cashapp_order(short_code, for_update=True)
    driver = get_driver(driver_id)
    if not driver.is_active:
        raise Conflict("Driver is not active")

    order.driver = driver
    order.save(update_fields=["driver", "updated_at"])
    _record_event(order, order.status, order.status, f"Driver assigned: {driver.full_name}", admin_action=True)
    logger.info("Driver %s assigned to order %s", driver.pk, short_code)
    return order, driver


def auto_cancel_stale_orders(now=None) -> int:
    """Cancel orders still awaiting payment after the payment window.

    Returns:
        Number of orders cancelled
    """
    now = now or timezone.now()
    cutoff = now - timedelta(minutes=get_setting("PAYMENT_WINDOW_MINUTES"))
    reason = "Payment window expired"

    with transaction.atomic():
        stale = list(
            CashAppOrder.objects.select_for_update()
            .filter(status=Status.AWAITING_PAYMENT, created_at__lt=cutoff)
        )
        if not stale:
            return 0

        OrderStatusEvent.objects.bulk_create([
            OrderStatusEvent(
                order=order,
                from_status=Status.AWAITING_PAYMENT,
                to_status=Status.CANCELED,
                reason=reason,
            )
            for order in stale
        ])
        cancelled = CashAppOrder.objects.filter(pk__in=[o.pk for o in stale]).update(
            status=Status.CANCELED,
            admin_notes=reason,
            updated_at=now,
        )

    logger.info("Auto-cancelled %d stale orders", cancelled)
    return cancelled


# =============================================================================
# Checkout orders
# =============================================================================


def _reserve_stock(products: dict, quantities: dict) -> None:
    """Take ordered quantities out of stock.

    Products without backorder that run out are deactivated. Must run
    inside a transaction holding row locks on ``products``.

    Raises:
        InvalidRequest: Some line asks for more than is in stock
    """
    short = [
        {"product_id": pid, "requested": qty, "available": products[pid].stock}
        for pid, qty in quantities.items()
        if products[pid].stock < qty and not products[pid].allow_backorder
    ]
    if short:
        raise InvalidRequest("Insufficient stock for some items", insufficient_stock=short)

    for pid, qty in quantities.items():
        product = products[pid]
        product.stock -= qty
        update_fields = ["stock", "updated_at"]
        if product.stock <= 0 and not product.allow_backorder:
            product.is_active = False
            update_fields.append("is_active")
        product.save(update_fields=update_fields)
        logger.info("Stock for %s now %d", product.slug, product.stock)


def place_order(items: list, delivery: dict) -> Order:
    """Create a delivery order from cart items.

    Prices come from the catalog, never from the request.

    Args:
        items: List of {"product_id", "quantity"} dicts
        delivery: Cleaned DeliveryDetailsForm data

    Returns:
        The created Order with its items

    Raises:
        InvalidRequest: Empty cart, bad quantity, unavailable product or
            not enough stock
    """
    if not items:
        raise InvalidRequest("Cart is empty")

    quantities = {}
    for item in items:
        if not isinstance(item, dict) or not item.get("product_id"):
            raise InvalidRequest("Each item needs a product_id")
        try:
            quantity = int(item.get("quantity", 1))
        except (TypeError, ValueError):
            raise InvalidRequest("Quantity must be a whole number")
        if quantity < 1:
            raise InvalidRequest("Quantity must be at least 1")
        try:
            key = str(uuid.UUID(str(item["product_id"])))
        except ValueError:
            raise InvalidRequest(f"Product not available: {item['product_id']}")
        quantities[key] = quantities.get(key, 0) + quantity

    address = delivery["address"]
    if delivery.get("apartment"):
        address = f"{address}, {delivery['apartment']}"

    with transaction.atomic():
        products = {
            str(p.pk): p
            for p in Product.objects.select_for_update().filter(pk__in=list(quantities), is_active=True)
        }

        missing = [pid for pid in quantities if pid not in products]
        if missing:
            raise InvalidRequest(f"Product not available: {missing[0]}")

        _reserve_stock(products, quantities)

        subtotal = cart_subtotal((products[pid].price, qty) for pid, qty in quantities.items())
        pricing = calculate_delivery(subtotal)

        order = create_with_short_code(
            Order,
            "order_number",
            customer_name=delivery["name"],
            customer_phone=delivery["phone"],
            customer_email=delivery.get("email") or "",
            delivery_address=address,
            delivery_city=delivery["city"],
            delivery_zip=delivery["zip_code"],
            time_preference=delivery.get("time_preference") or "",
            special_instructions=delivery.get("special_instructions") or "",
            subtotal=pricing.subtotal,
            delivery_fee=pricing.delivery_fee,
            total=pricing.total,
        )
        OrderItem.objects.bulk_create([
            OrderItem(
                order=order,
                product=products[pid],
                product_name=products[pid].name,
                unit_price=products[pid].price,
                quantity=qty,
            )
            for pid, qty in quantities.items()
        ])

    logger.info("Placed order %s, total %s", order.order_number, pricing.total)
    return order


def get_order(order_id) -> Order:
    try:
        return Order.objects.prefetch_related("items").get(pk=order_id)
    except (Order.DoesNotExist, ValidationError, ValueError):
        raise NotFound("Order not found")


# =============================================================================
# Admin summaries
# =============================================================================


def count_recent_orders(now=None) -> int:
    """Orders created within the ASAP window. Database errors count as zero."""
    now = now or timezone.now()
    cutoff = now - timedelta(minutes=get_setting("ASAP_WINDOW_MINUTES"))
    try:
        return Order.objects.filter(created_at__gte=cutoff).count()
    except DatabaseError as e:
        logger.warning("ASAP count failed: %s", e)
        return 0


def tab_counts() -> dict:
    """Cash App order counts per admin tab."""
    try:
        return {
            key: CashAppOrder.objects.filter(status__in=statuses).count()
            for key, statuses in STATUS_GROUPS.items()
        }
    except DatabaseError as e:
        logger.warning("Tab counts failed: %s", e)
        return {key: 0 for key in STATUS_GROUPS}


def kpi_summary(now=None) -> dict:
    """Today's delivered revenue, order count and pending backlog."""
    now = now or timezone.now()
    start_of_day = timezone.localtime(now).replace(hour=0, minute=0, second=0, microsecond=0)
    summary = {"revenue": 0, "orders": 0, "pending": 0, "p90": None, "last_updated": now.isoformat()}
    try:
        today = CashAppOrder.objects.filter(created_at__gte=start_of_day)
        revenue = today.filter(status=Status.DELIVERED).aggregate(total=Sum("amount_cents"))["total"]
        summary["revenue"] = revenue or 0
        summary["orders"] = today.count()
        summary["pending"] = CashAppOrder.objects.filter(status__in=STATUS_GROUPS["pending"]).count()
    except DatabaseError as e:
        logger.warning("KPI summary failed: %s", e)
        summary.update(revenue=0, orders=0, pending=0)
    return summary


# =============================================================================
# Payouts
# =============================================================================


def list_payouts() -> list[dict]:
    """Payouts newest first, each with the driver's contact fields."""
    payouts = Payout.objects.select_related("driver").order_by("-created_at")
    return [
        {
            **payout.to_dict(),
            "driver": {
                "full_name": payout.driver.full_name,
                "phone": payout.driver.phone,
                "email": payout.driver.email,
            },
        }
        for payout in payouts
    ]


@transaction.atomic
def mark_payout_paid(payout_id) -> Payout:
    try:
        payout = Payout.objects.select_for_update().get(pk=payout_id)
    except (Payout.DoesNotExist, ValidationError, ValueError):
        raise NotFound("Payout not found")

    if payout.status == Payout.Status.PAID:
        return payout
    if payout.status in (Payout.Status.BLOCKED, Payout.Status.REVERTED):
        raise Conflict(f"Payout is {payout.status} and cannot be paid")

    payout.status = Payout.Status.PAID
    payout.paid_at = timezone.now()
    payout.save(update_fields=["status", "paid_at", "updated_at"])
    return payout


# =============================================================================
# Drivers
# =============================================================================


def list_drivers(search: str = "", active=None):
    drivers = Driver.objects.order_by("-created_at")
    if search:
        drivers = drivers.filter(
            Q(full_name__icontains=search) | Q(phone__icontains=search) | Q(email__icontains=search)
        )
    if active is not None:
        drivers = drivers.filter(is_active=active)
    return drivers


def get_driver(driver_id) -> Driver:
    try:
        return Driver.objects.get(pk=driver_id)
    except (Driver.DoesNotExist, ValidationError, ValueError):
        raise NotFound("Driver not found")


def _check_driver_unique(phone, email, exclude_pk=None):
    duplicates = Driver.objects.filter(Q(phone=phone) | Q(email__iexact=email))
    if exclude_pk is not None:
        duplicates = duplicates.exclude(pk=exclude_pk)
    if duplicates.exists():
        raise Conflict("A driver with this phone or email already exists")


def create_driver(full_name: str, phone: str, email: str) -> Driver:
    """Create an active driver.

    Raises:
        Conflict: Phone or email already belongs to a driver
    """
    _check_driver_unique(phone, email)
    try:
        with transaction.atomic():
            driver = Driver.objects.create(full_name=full_name, phone=phone, email=email)
    except IntegrityError:
        # Lost a race with another insert; anything else is not a duplicate.
        _check_driver_unique(phone, email)
        raise
    logger.info("Created driver %s", driver.pk)
    return driver


DRIVER_EDITABLE_FIELDS = ("full_name", "phone", "email", "is_active")


def update_driver(driver_id, changes: dict) -> Driver:
    """Apply already-validated field changes to a driver.

    Raises:
        InvalidRequest: No editable field given, or a non-boolean is_active
        NotFound: Unknown driver
        Conflict: New phone or email belongs to another driver
    """
    driver = get_driver(driver_id)
    updates = {k: v for k, v in changes.items() if k in DRIVER_EDITABLE_FIELDS}
    if not updates:
        raise InvalidRequest("No valid fields to update")
    if "is_active" in updates and not isinstance(updates["is_active"], bool):
        raise InvalidRequest("is_active must be true or false")

    phone = updates.get("phone", driver.phone)
    email = updates.get("email", driver.email)
    _check_driver_unique(phone, email, exclude_pk=driver.pk)
    for field, value in updates.items():
        setattr(driver, field, value)
    try:
        with transaction.atomic():
            driver.save(update_fields=[*updates, "updated_at"])
    except IntegrityError:
        _check_driver_unique(phone, email, exclude_pk=driver.pk)
        raise
    return driver


def delete_driver(driver_id) -> None:
    """Delete a driver with no active assignments or payout history."""
    driver = get_driver(driver_id)
    if driver.cashapp_orders.filter(status=Status.ASSIGNED).exists():
        raise Conflict("Cannot delete driver with active assignments")
    try:
        driver.delete()
    except ProtectedError:
        raise Conflict("Cannot delete driver with payout history")
    logger.info("Deleted driver %s", driver_id)


def process_driver_payout(driver_id, amount_cents) -> Payout:
    """Pay out part of a driver's balance.

    The payout row and the balance decrement commit together.

    Raises:
        InvalidRequest: Amount invalid or above the balance
        NotFound: Unknown driver
    """
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
        raise InvalidRequest("Valid payout amount is required")

    with transaction.atomic():
        try:
            driver = Driver.objects.select_for_update().get(pk=driver_id)
        except (Driver.DoesNotExist, ValidationError, ValueError):
            raise NotFound("Driver not found")

        if driver.balance_cents < amount_cents:
            raise InvalidRequest("Insufficient balance for payout")

        payout = Payout.objects.create(
            driver=driver,
            amount_cents=amount_cents,
            status=Payout.Status.PAID,
            paid_at=timezone.now(),
        )
        driver.balance_cents -= amount_cents
        driver.save(update_fields=["balance_cents", "updated_at"])

    logger.info("Paid %d cents to driver %s", amount_cents, driver.pk)
    return payout


def submit_driver_application(data: dict) -> DriverApplication:
    """Store a driver application unless an open one already exists.

    Raises:
        Conflict: An application with this email or phone is still open
    """
    open_statuses = (DriverApplication.Status.NEW, DriverApplication.Status.REVIEWED)
    duplicate = DriverApplication.objects.filter(
        Q(email__iexact=data["email"]) | Q(phone=data["phone"]),
        status__in=open_statuses,
    )
    if duplicate.exists():
        raise Conflict("An application with this email or phone number already exists")

    application = DriverApplication.objects.create(
        name=data["name"],
        phone=data["phone"],
        email=data["email"],
        availability=data["availability"],
        vehicle_type=data.get("vehicle_type") or "",
        cashapp_handle=data.get("cashapp_handle") or "",
        about=data.get("about") or "",
    )
    logger.info("Driver application %s received", application.pk)
    return application
