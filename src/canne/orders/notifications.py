"""Discord webhook notifications for staff.

Notifications never fail the operation that triggered them: a missing
webhook is skipped and any HTTP error is logged and swallowed.

Usage:
    from canne.orders.notifications import notify_payment_submitted

    transaction.on_commit(lambda: notify_payment_submitted(order))
"""

import logging

import httpx
from django.utils import timezone

from canne.core.conf import get_setting

logger = logging.getLogger(__name__)

COLOR_PENDING = 0xF59E0B
COLOR_SUCCESS = 0x00FF00
COLOR_WARNING = 0xFF9900
COLOR_DANGER = 0xFF0000
COLOR_BULK = 0x8B5CF6

NOTIFY_STATUSES = ("delivered", "refunded", "canceled", "undelivered")
BULK_LIST_LIMIT = 10


def send_discord_embed(embed: dict, username: str | None = None) -> bool:
    """Post one embed to the configured webhook.

    Returns:
        True if Discord accepted the message, False otherwise.
    """
    webhook_url = get_setting("DISCORD_WEBHOOK_URL")
    if not webhook_url:
        logger.debug("No Discord webhook configured, skipping notification")
        return False

    payload = {"embeds": [embed]}
    if username:
        payload["username"] = username

    try:
        response = httpx.post(
            webhook_url,
            json=payload,
            timeout=get_setting("NOTIFICATION_TIMEOUT"),
        )
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error("Discord notification failed: %s", e)
        return False

    logger.info("Discord notification sent: %s", embed.get("title"))
    return True


def _money(amount_cents: int) -> str:
    return f"${amount_cents / 100:.2f}"


def _field(name, value, inline=True):
    return {"name": name, "value": value, "inline": inline}


def notify_payment_submitted(order) -> bool:
    """Tell staff a customer submitted Cash App payment proof."""
    site_name = get_setting("SITE_NAME")
    fields = [
        _field("Short Code", order.short_code),
        _field("Amount", _money(order.amount_cents)),
        _field("Phone", order.customer_phone or "N/A"),
        _field("Status", "VERIFYING"),
    ]
    if order.cashapp_handle:
        fields.append(_field("Cash App Handle", order.cashapp_handle))
    if order.screenshot_url:
        fields.append(_field("Screenshot", f"[View Screenshot]({order.screenshot_url})"))

    embed = {
        "title": "Payment Submitted for Verification",
        "color": COLOR_PENDING,
        "fields": fields,
        "footer": {"text": f"{site_name} Payment System • Verify payment in Cash App and update status"},
        "timestamp": timezone.now().isoformat(),
    }
    return send_discord_embed(embed)


def notify_status_change(order, from_status: str, to_status: str, reason: str | None = None) -> bool:
    """Tell staff about a significant order status change."""
    if to_status not in NOTIFY_STATUSES:
        return False

    if to_status == "delivered":
        color = COLOR_SUCCESS
    elif to_status == "refunded":
        color = COLOR_WARNING
    else:
        color = COLOR_DANGER

    site_name = get_setting("SITE_NAME")
    fields = [
        _field("Order", order.short_code),
        _field("From", from_status.replace("_", " ").upper()),
        _field("To", to_status.replace("_", " ").upper()),
        _field("Amount", _money(order.amount_cents)),
        _field("Customer", order.customer_phone or "N/A"),
    ]
    if reason:
        fields.append(_field("Reason", reason, inline=False))

    embed = {
        "title": "Order Status Changed",
        "color": color,
        "fields": fields,
        "footer": {"text": f"{site_name} Admin System"},
        "timestamp": timezone.now().isoformat(),
    }
    return send_discord_embed(embed, username=f"{site_name} Status Bot")


def notify_bulk_status_change(short_codes: list, to_status: str, reason: str | None = None) -> bool:
    """Tell staff that several orders moved to one status at once."""
    site_name = get_setting("SITE_NAME")
    listed = ", ".join(short_codes[:BULK_LIST_LIMIT])
    if len(short_codes) > BULK_LIST_LIMIT:
        listed += f"... (+{len(short_codes) - BULK_LIST_LIMIT} more)"

    fields = [
        _field("Status", to_status.replace("_", " ").upper()),
        _field("Orders Updated", str(len(short_codes))),
        _field("Orders", listed, inline=False),
    ]
    if reason:
        fields.append(_field("Reason", reason, inline=False))

    embed = {
        "title": "Bulk Status Change",
        "color": COLOR_BULK,
        "fields": fields,
        "footer": {"text": f"{site_name} Admin System - Bulk Action"},
        "timestamp": timezone.now().isoformat(),
    }
    return send_discord_embed(embed, username=f"{site_name} Bulk Action Bot")
