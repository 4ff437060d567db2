"""Catalog models for the Cannè storefront."""

import uuid
from decimal import Decimal

from django.db import models
from django.utils import timezone


class Product(models.Model):
    """A purchasable artwork with its gift tier.

    Managed by staff; storefront code paths only read products, apart from
    admin stock adjustments.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, unique=True)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal("0.00"))
    artwork_url = models.URLField(max_length=500, blank=True)
    gift_size = models.CharField(max_length=50, blank=True)
    tier = models.CharField(max_length=50, default="Starter")
    has_delivery = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    stock = models.IntegerField(default=0)
    allow_backorder = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "products"
        ordering = ["tier", "name"]

    def __str__(self):
        return self.name

    def to_dict(self):
        return {
            "id": str(self.pk),
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "price": float(self.price),
            "artwork_url": self.artwork_url,
            "gift_size": self.gift_size,
            "tier": self.tier,
            "has_delivery": self.has_delivery,
            "is_active": self.is_active,
            "stock": self.stock,
        }
