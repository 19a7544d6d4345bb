"""Test utilities for the checkout service."""

from tests.utils.builders import (
    CRON_SECRET,
    KEY_SECRET,
    NOW,
    WEBHOOK_SECRET,
    InMemoryOrderRepository,
    make_campaign,
    make_item,
    make_order,
    make_settings,
    tamil_nadu_rules,
)

__all__ = [
    "CRON_SECRET",
    "KEY_SECRET",
    "NOW",
    "WEBHOOK_SECRET",
    "InMemoryOrderRepository",
    "make_campaign",
    "make_item",
    "make_order",
    "make_settings",
    "tamil_nadu_rules",
]
