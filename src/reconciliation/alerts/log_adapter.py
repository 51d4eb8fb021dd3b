"""Ops alert adapter that writes findings to the structured log."""

from uuid import uuid4

import structlog

from reconciliation.alerts.port import OpsAlertPort

logger = structlog.get_logger(__name__)


class LogOpsAlertAdapter(OpsAlertPort):
    """Emit one warning per finding, plus a summary line."""

    def send(self, report) -> dict:
        alert_id = f"alert-{uuid4().hex[:12]}"
        for finding in report.findings:
            logger.warning("Reconciliation finding", alert_id=alert_id, **finding.to_dict())
        logger.warning(
            "Reconciliation report",
            alert_id=alert_id,
            as_of=report.as_of.isoformat(),
            **report.counts(),
        )
        return {"alert_id": alert_id, "status": "sent"}
