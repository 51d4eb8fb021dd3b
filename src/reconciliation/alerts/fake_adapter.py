"""Fake ops alert adapter — records reports for testing."""

from uuid import uuid4

from reconciliation.alerts.port import OpsAlertPort


class FakeOpsAlertAdapter(OpsAlertPort):
    """Alert adapter that keeps every report in memory for test assertions."""

    def __init__(self):
        self.sent_reports: list = []

    def send(self, report) -> dict:
        alert_id = f"alert-{uuid4().hex[:12]}"
        self.sent_reports.append(report)
        return {"alert_id": alert_id, "status": "sent"}

    def reset(self):
        self.sent_reports.clear()
