"""Ops alert adapter registry.

OPS_ALERT_ADAPTER selects the adapter: "fake" (default, records reports in
memory) or "log" (writes findings to the structured log).
"""

import os

from reconciliation.alerts.port import OpsAlertPort

_current_adapter: OpsAlertPort | None = None


def get_alert_adapter() -> OpsAlertPort:
    """Return the configured alert adapter (singleton)."""
    global _current_adapter
    if _current_adapter is None:
        kind = os.environ.get("OPS_ALERT_ADAPTER", "fake").lower()
        if kind == "fake":
            from reconciliation.alerts.fake_adapter import FakeOpsAlertAdapter

            _current_adapter = FakeOpsAlertAdapter()
        elif kind == "log":
            from reconciliation.alerts.log_adapter import LogOpsAlertAdapter

            _current_adapter = LogOpsAlertAdapter()
        else:
            raise ValueError(f"Unknown ops alert adapter: {kind}")
    return _current_adapter


def set_alert_adapter(adapter: OpsAlertPort) -> None:
    global _current_adapter
    _current_adapter = adapter


def reset_alert_adapter() -> None:
    global _current_adapter
    _current_adapter = None
