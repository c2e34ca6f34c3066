"""Community reports of observed MEV attacks."""
import itertools
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from arbitrage_router.errors import InvalidTransactionStatus, ReportNotFound, ValidationError
from arbitrage_router.events import EventLog, EventType
from arbitrage_router.mev_protection.risk_engine import AttackType
from arbitrage_router.utils.amounts import ensure_amount
from arbitrage_router.utils.auth import authorize

logger = logging.getLogger(__name__)


MAX_DESCRIPTION_LENGTH = 200


class ReportStatus(str, Enum):
    """Review state of an attack report."""
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


@dataclass
class AttackDetails:
    """What the reporter observed."""
    attack_type: AttackType
    victim_transaction: str
    estimated_damage: int
    attacker_address: Optional[str] = None
    description: str = ""


@dataclass
class AttackReport:
    report_id: str
    reporter: str
    details: AttackDetails
    reported_at: int
    status: ReportStatus = ReportStatus.PENDING
    resolved_by: Optional[str] = None
    resolved_at: Optional[int] = None

    def to_dict(self) -> Dict:
        return {
            "report_id": self.report_id,
            "reporter": self.reporter,
            "attack_type": self.details.attack_type.value,
            "victim_transaction": self.details.victim_transaction,
            "attacker_address": self.details.attacker_address,
            "estimated_damage": self.details.estimated_damage,
            "description": self.details.description,
            "reported_at": self.reported_at,
            "status": self.status.value,
        }


class AttackReportBook:
    """Keyed store of attack reports with authority-only review."""

    def __init__(self, authority: str, event_log: Optional[EventLog] = None):
        self.authority = authority
        self.event_log = event_log if event_log is not None else EventLog()
        self._reports: Dict[str, AttackReport] = {}
        self._ids = itertools.count(1)

    def report_attack(
        self,
        reporter: str,
        details: AttackDetails,
        now: Optional[int] = None
    ) -> AttackReport:
        """
        File a new report in Pending state.

        Raises:
            ValidationError: If the reporter or victim transaction is missing or
                the description is longer than 200 characters
        """
        if not reporter:
            raise ValidationError("Reporter identity is required")
        if not details.victim_transaction:
            raise ValidationError("Victim transaction is required")
        if len(details.description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(
                f"Description exceeds {MAX_DESCRIPTION_LENGTH} characters"
            )
        ensure_amount(details.estimated_damage, "estimated_damage")

        report = AttackReport(
            report_id=f"report-{next(self._ids)}",
            reporter=reporter,
            details=details,
            reported_at=int(time.time()) if now is None else now,
        )
        self._reports[report.report_id] = report

        logger.warning(
            f"MEV attack reported by {reporter}: {details.attack_type.value} "
            f"on {details.victim_transaction} (damage {details.estimated_damage})"
        )
        self.event_log.emit(
            EventType.ATTACK_REPORTED,
            report_id=report.report_id,
            reporter=reporter,
            attack_type=details.attack_type.value,
            victim_transaction=details.victim_transaction,
            estimated_damage=details.estimated_damage,
        )
        return report

    def resolve_report(
        self,
        caller: str,
        report_id: str,
        status: ReportStatus,
        now: Optional[int] = None
    ) -> AttackReport:
        """Move a Pending report to Verified or Rejected (authority only)."""
        authorize(caller, self.authority)
        report = self.get(report_id)

        if report.status != ReportStatus.PENDING:
            raise InvalidTransactionStatus(f"Report {report_id} already {report.status.value}")
        if status == ReportStatus.PENDING:
            raise ValidationError("A report can only be resolved to verified or rejected")

        report.status = status
        report.resolved_by = caller
        report.resolved_at = int(time.time()) if now is None else now
        logger.info(f"Report {report_id} marked {status.value} by {caller}")
        return report

    def get(self, report_id: str) -> AttackReport:
        report = self._reports.get(report_id)
        if report is None:
            raise ReportNotFound(f"Attack report {report_id} not found")
        return report

    def list_reports(self, status: Optional[ReportStatus] = None) -> List[AttackReport]:
        return [
            report for report in self._reports.values()
            if status is None or report.status == status
        ]

    def __len__(self) -> int:
        return len(self._reports)
