"""Management command to cancel Cash App orders whose payment window expired.

Meant to run from cron every few minutes:

    python manage.py auto_cancel_orders
"""

from django.core.management.base import BaseCommand

from canne.core.conf import get_setting
from canne.orders.services import auto_cancel_stale_orders


class Command(BaseCommand):
    help = "Cancel orders still awaiting payment after the payment window"

    def handle(self, *args, **options):
        window = get_setting("PAYMENT_WINDOW_MINUTES")
        cancelled = auto_cancel_stale_orders()
        self.stdout.write(
            self.style.SUCCESS(f"Auto-cancelled {cancelled} orders older than {window} minutes")
        )
