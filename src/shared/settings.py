"""Operational thresholds read from the environment."""

import os

DEFAULT_SHIPMENT_STALE_HOURS = 24
DEFAULT_RETURN_STALE_HOURS = 72


def _hours(name: str, default: int) -> int:
    value = os.environ.get(name)
    if not value:
        return default
    hours = int(value)
    if hours <= 0:
        raise ValueError(f"{name} must be a positive number of hours, got {value!r}")
    return hours


def shipment_stale_hours() -> int:
    """Hours without a tracking update before an active shipment is considered stale."""
    return _hours("SHIPMENT_STALE_HOURS", DEFAULT_SHIPMENT_STALE_HOURS)


def return_stale_hours() -> int:
    """Hours without a status change before an active return is considered stuck."""
    return _hours("RETURN_STALE_HOURS", DEFAULT_RETURN_STALE_HOURS)
