"""Reconciliation scanner — periodic read-only sweep for work that stalled.

Finds shipments with no tracking update inside the freshness threshold,
shipments past their estimated delivery date, returns without a status
change inside their threshold, and refunds that failed and wait for a
manual re-drive. Findings are reported through the ops alert port; no
aggregate is modified.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta

import structlog
from protean.domain import Domain

from reconciliation.alerts import get_alert_adapter
from reconciliation.alerts.port import OpsAlertPort
from returns.return_request.return_request import ReturnRequest
from shared.clock import as_utc, utcnow
from shared.settings import return_stale_hours, shipment_stale_hours
from shipping.shipment.shipment import Shipment

logger = structlog.get_logger(__name__)

STALE_SHIPMENT = "stale_shipment"
DELAYED_SHIPMENT = "delayed_shipment"
STUCK_RETURN = "stuck_return"
FAILED_REFUND = "failed_refund"


@dataclass(frozen=True)
class Finding:
    """One aggregate that needs attention."""

    kind: str
    reference: str  # tracking number or return code
    order_id: str
    status: str
    last_activity_at: datetime | None
    detail: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["last_activity_at"] = self.last_activity_at.isoformat() if self.last_activity_at else None
        return data


@dataclass(frozen=True)
class ReconciliationReport:
    as_of: datetime
    shipment_stale_hours: int
    return_stale_hours: int
    findings: tuple[Finding, ...] = field(default_factory=tuple)

    def of_kind(self, kind: str) -> list[Finding]:
        return [f for f in self.findings if f.kind == kind]

    @property
    def is_clean(self) -> bool:
        return not self.findings

    def counts(self) -> dict[str, int]:
        return {kind: len(self.of_kind(kind)) for kind in (STALE_SHIPMENT, DELAYED_SHIPMENT, STUCK_RETURN, FAILED_REFUND)}


def _shipment_finding(kind: str, shipment: Shipment, detail: str) -> Finding:
    return Finding(
        kind=kind,
        reference=shipment.tracking_number,
        order_id=str(shipment.order_id),
        status=shipment.status,
        last_activity_at=as_utc(shipment.last_updated_at),
        detail=detail,
    )


def _return_finding(kind: str, return_request: ReturnRequest, detail: str) -> Finding:
    return Finding(
        kind=kind,
        reference=return_request.return_code,
        order_id=str(return_request.order_id),
        status=return_request.status,
        last_activity_at=as_utc(return_request.updated_at or return_request.created_at),
        detail=detail,
    )


class ReconciliationScanner:
    """Scan both contexts and hand the findings to an alert adapter."""

    def __init__(
        self,
        shipping_domain: Domain,
        returns_domain: Domain,
        alerts: OpsAlertPort | None = None,
        shipment_hours: int | None = None,
        return_hours: int | None = None,
    ):
        self.shipping_domain = shipping_domain
        self.returns_domain = returns_domain
        self.alerts = alerts
        self.shipment_hours = shipment_stale_hours() if shipment_hours is None else shipment_hours
        self.return_hours = return_stale_hours() if return_hours is None else return_hours
        if self.shipment_hours < 0 or self.return_hours < 0:
            raise ValueError("Freshness thresholds cannot be negative")

    def _scan_shipments(self, as_of: datetime) -> list[Finding]:
        findings = []
        with self.shipping_domain.domain_context():
            repo = self.shipping_domain.repository_for(Shipment)
            for shipment in repo.needing_update(as_of - timedelta(hours=self.shipment_hours)):
                findings.append(
                    _shipment_finding(
                        STALE_SHIPMENT,
                        shipment,
                        f"No tracking update for more than {self.shipment_hours}h",
                    )
                )
            for shipment in repo.delayed(as_of):
                findings.append(
                    _shipment_finding(
                        DELAYED_SHIPMENT,
                        shipment,
                        f"Estimated delivery {as_utc(shipment.estimated_delivery_date).isoformat()} has passed",
                    )
                )
        return findings

    def _scan_returns(self, as_of: datetime) -> list[Finding]:
        findings = []
        with self.returns_domain.domain_context():
            repo = self.returns_domain.repository_for(ReturnRequest)
            for return_request in repo.stuck(as_of - timedelta(hours=self.return_hours)):
                findings.append(
                    _return_finding(
                        STUCK_RETURN,
                        return_request,
                        f"No status change for more than {self.return_hours}h",
                    )
                )
            for return_request in repo.failed_refunds():
                findings.append(
                    _return_finding(
                        FAILED_REFUND,
                        return_request,
                        f"Refund {return_request.refund.refund_id} failed: {return_request.refund.failure_reason}",
                    )
                )
        return findings

    def scan(self, as_of: datetime | None = None) -> ReconciliationReport:
        """Collect findings without reporting them."""
        as_of = as_utc(as_of) or utcnow()
        findings = self._scan_shipments(as_of) + self._scan_returns(as_of)
        return ReconciliationReport(
            as_of=as_of,
            shipment_stale_hours=self.shipment_hours,
            return_stale_hours=self.return_hours,
            findings=tuple(findings),
        )

    def run(self, as_of: datetime | None = None) -> ReconciliationReport:
        """Scan, then alert when anything was found."""
        report = self.scan(as_of)
        logger.info("Reconciliation scan finished", as_of=report.as_of.isoformat(), **report.counts())
        if not report.is_clean:
            alerts = self.alerts or get_alert_adapter()
            result = alerts.send(report)
            logger.info("Reconciliation alert sent", alert_id=result.get("alert_id"), status=result.get("status"))
        return report
