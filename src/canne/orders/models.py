"""Order, driver and payout models.

Tables are owned by the Postgres database; ``db_table`` names match the
tables the storefront has always used.
"""

import uuid
from decimal import Decimal

from django.db import models
from django.utils import timezone


class Driver(models.Model):
    """Delivery driver."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    full_name = models.CharField(max_length=200)
    phone = models.CharField(max_length=32, unique=True)
    email = models.EmailField(unique=True)
    is_active = models.BooleanField(default=True)
    balance_cents = models.IntegerField(default=0)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "drivers"
        ordering = ["-created_at"]

    def __str__(self):
        return self.full_name

    def to_dict(self):
        return {
            "id": str(self.pk),
            "full_name": self.full_name,
            "phone": self.phone,
            "email": self.email,
            "is_active": self.is_active,
            "balance_cents": self.balance_cents,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class DriverApplication(models.Model):
    """Application submitted through the public driver signup form."""

    class Status(models.TextChoices):
        NEW = "new", "New"
        REVIEWED = "reviewed", "Reviewed"
        APPROVED = "approved", "Approved"
        REJECTED = "rejected", "Rejected"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=32)
    email = models.EmailField()
    availability = models.JSONField(default=list)
    vehicle_type = models.CharField(max_length=50, blank=True)
    cashapp_handle = models.CharField(max_length=50, blank=True)
    about = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.NEW)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "driver_applications"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.name} ({self.get_status_display()})"


class Order(models.Model):
    """Cart checkout order with delivery details."""

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        CONFIRMED = "confirmed", "Confirmed"
        OUT_FOR_DELIVERY = "out_for_delivery", "Out for delivery"
        DELIVERED = "delivered", "Delivered"
        CANCELLED = "cancelled", "Cancelled"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(max_length=20, unique=True)

    customer_name = models.CharField(max_length=200)
    customer_phone = models.CharField(max_length=32)
    customer_email = models.EmailField(blank=True)

    delivery_address = models.CharField(max_length=255, blank=True)
    delivery_city = models.CharField(max_length=100, blank=True)
    delivery_zip = models.CharField(max_length=10, blank=True)
    time_preference = models.CharField(max_length=100, blank=True)
    special_instructions = models.TextField(blank=True)

    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    delivery_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    driver = models.ForeignKey(
        Driver,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]

    def __str__(self):
        return f"Order {self.order_number} - {self.customer_name}"

    @property
    def free_delivery(self):
        return self.delivery_fee == 0

    def to_dict(self):
        return {
            "id": str(self.pk),
            "order_number": self.order_number,
            "status": self.status,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_email": self.customer_email,
            "delivery_address": self.delivery_address,
            "delivery_city": self.delivery_city,
            "delivery_zip": self.delivery_zip,
            "time_preference": self.time_preference,
            "special_instructions": self.special_instructions,
            "subtotal": float(self.subtotal),
            "delivery_fee": float(self.delivery_fee),
            "total": float(self.total),
            "free_delivery": self.free_delivery,
            "driver_id": str(self.driver_id) if self.driver_id else None,
            "created_at": self.created_at.isoformat(),
            "items": [item.to_dict() for item in self.items.all()],
        }


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(
        "store.Product",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_items",
    )
    product_name = models.CharField(max_length=200)
    unit_price = models.DecimalField(max_digits=8, decimal_places=2)
    quantity = models.PositiveIntegerField(default=1)

    class Meta:
        db_table = "order_items"

    def __str__(self):
        return f"{self.product_name} × {self.quantity}"

    def to_dict(self):
        return {
            "product_id": str(self.product_id) if self.product_id else None,
            "product_name": self.product_name,
            "unit_price": float(self.unit_price),
            "quantity": self.quantity,
        }


class CashAppOrder(models.Model):
    """Order paid by Cash App and reconciled by its short code."""

    class Status(models.TextChoices):
        AWAITING_PAYMENT = "awaiting_payment", "Awaiting payment"
        VERIFYING = "verifying", "Verifying payment"
        PAID = "paid", "Paid"
        ASSIGNED = "assigned", "Assigned to driver"
        DELIVERED = "delivered", "Delivered"
        UNDELIVERED = "undelivered", "Undelivered"
        REFUNDED = "refunded", "Refunded"
        CANCELED = "canceled", "Canceled"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    short_code = models.CharField(max_length=20, unique=True)
    amount_cents = models.PositiveIntegerField()
    customer_phone = models.CharField(max_length=32, blank=True)
    cashapp_handle = models.CharField(max_length=50, blank=True)
    screenshot_url = models.URLField(max_length=500, blank=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.AWAITING_PAYMENT,
        db_index=True,
    )
    driver = models.ForeignKey(
        Driver,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="cashapp_orders",
    )
    admin_notes = models.TextField(blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "cashapp_orders"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.short_code} ({self.get_status_display()})"

    @property
    def amount(self):
        return Decimal(self.amount_cents) / 100

    def to_dict(self):
        return {
            "id": str(self.pk),
            "short_code": self.short_code,
            "amount_cents": self.amount_cents,
            "customer_phone": self.customer_phone,
            "cashapp_handle": self.cashapp_handle,
            "screenshot_url": self.screenshot_url,
            "status": self.status,
            "driver_id": str(self.driver_id) if self.driver_id else None,
            "admin_notes": self.admin_notes,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class OrderStatusEvent(models.Model):
    """Audit trail entry for a Cash App order status change."""

    order = models.ForeignKey(CashAppOrder, on_delete=models.CASCADE, related_name="status_events")
    from_status = models.CharField(max_length=20)
    to_status = models.CharField(max_length=20)
    reason = models.TextField(blank=True)
    admin_action = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "order_status_events"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.order.short_code}: {self.from_status} -> {self.to_status}"


class Payout(models.Model):
    """Money owed or paid to a driver."""

    class Status(models.TextChoices):
        QUEUED = "queued", "Queued"
        PAID = "paid", "Paid"
        BLOCKED = "blocked", "Blocked"
        REVERTED = "reverted", "Reverted"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    driver = models.ForeignKey(Driver, on_delete=models.PROTECT, related_name="payouts")
    order = models.ForeignKey(
        CashAppOrder,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payouts",
    )
    amount_cents = models.PositiveIntegerField()
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.QUEUED)
    blocked_reason = models.TextField(blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "payouts"
        ordering = ["-created_at"]

    def __str__(self):
        return f"Payout {self.amount_cents}¢ to {self.driver}"

    def to_dict(self):
        return {
            "id": str(self.pk),
            "driver_id": str(self.driver_id),
            "order_id": str(self.order_id) if self.order_id else None,
            "amount_cents": self.amount_cents,
            "status": self.status,
            "blocked_reason": self.blocked_reason,
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
            "created_at": self.created_at.isoformat(),
        }
