"""Ops alert port — abstract interface for reporting reconciliation findings."""

from abc import ABC, abstractmethod


class OpsAlertPort(ABC):
    """Abstract interface for ops alert adapters."""

    @abstractmethod
    def send(self, report) -> dict:
        """Deliver a ReconciliationReport to the operations team.

        Returns:
            dict with keys: alert_id, status ("sent" or "failed"), error (optional)
        """
        ...
