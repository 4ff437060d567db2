# Initial catalog schema

import uuid
from decimal import Decimal

import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=200)),
                ("slug", models.SlugField(max_length=200, unique=True)),
                ("description", models.TextField(blank=True)),
                ("price", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=8)),
                ("artwork_url", models.URLField(blank=True, max_length=500)),
                ("gift_size", models.CharField(blank=True, max_length=50)),
                ("tier", models.CharField(default="Starter", max_length=50)),
                ("has_delivery", models.BooleanField(default=False)),
                ("is_active", models.BooleanField(default=True)),
                ("stock", models.IntegerField(default=0)),
                ("allow_backorder", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "products",
                "ordering": ["tier", "name"],
            },
        ),
    ]
