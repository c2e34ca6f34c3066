"""
Protection Scheduler.

Holds swap intents as protected transactions until their execution deadline,
re-assesses MEV risk at execution time and either executes them through the
router, defers them, or blocks them when an attack pattern is detected.

Lifecycle:
    Pending -> Executed | Cancelled | Blocked

Terminal states never change. A transaction with an execution in flight can
be neither executed again nor cancelled until that execution settles.
"""
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from arbitrage_router.errors import (
    CancellationWindowClosed, ExecutionDeferred, ExecutionTooEarly, InvalidAmount,
    InvalidTimeDelay, InvalidTransactionStatus, PriceImpactTooHigh, ProtectionInactive,
    SandwichAttackDetected, SlippageTooHigh, TransactionNotFound, Unauthorized
)
from arbitrage_router.events import EventLog, EventType
from arbitrage_router.execution.execution_coordinator import ExecutionRecord
from arbitrage_router.mev_protection.attack_reports import (
    AttackDetails, AttackReport, AttackReportBook, ReportStatus
)
from arbitrage_router.mev_protection.risk_engine import (
    MEVRiskEngine, RiskAssessment, RiskLevel, SandwichDetection, TransactionParams
)
from arbitrage_router.pathfinding.route_models import ArbitrageRequest
from arbitrage_router.router_service import RouterService
from arbitrage_router.utils.amounts import apply_bps, ensure_amount
from arbitrage_router.utils.auth import authorize
from arbitrage_router.utils.counters import CounterSet

logger = logging.getLogger(__name__)


PROTECTION_COUNTERS = ("transactions_protected", "attacks_prevented", "protection_fees")

MAX_PRICE_IMPACT_BPS = 5_000
MAX_TIME_DELAY_SECONDS = 300
MAX_SLIPPAGE_PROTECTION_BPS = 1_000


class ProtectionLevel(str, Enum):
    """Protection tiers offered to clients."""
    BASIC = "basic"
    ADVANCED = "advanced"
    MAXIMUM = "maximum"


PROTECTION_FEE_BPS = {
    ProtectionLevel.BASIC: 10,
    ProtectionLevel.ADVANCED: 25,
    ProtectionLevel.MAXIMUM: 50,
}


class TransactionStatus(str, Enum):
    """Protected transaction status."""
    PENDING = "pending"
    EXECUTED = "executed"
    CANCELLED = "cancelled"
    BLOCKED = "blocked"


@dataclass
class ProtectionMechanisms:
    """Mechanisms enabled for a protected transaction."""
    time_delay: bool = False
    slippage_protection: bool = False
    price_impact_check: bool = False
    frontrun_detection: bool = False
    commit_reveal: bool = False
    private_mempool: bool = False

    @classmethod
    def for_level(cls, level: ProtectionLevel) -> "ProtectionMechanisms":
        """Basic adds delay and slippage protection; each tier adds to the last."""
        mechanisms = cls(time_delay=True, slippage_protection=True)
        if level in (ProtectionLevel.ADVANCED, ProtectionLevel.MAXIMUM):
            mechanisms.price_impact_check = True
            mechanisms.frontrun_detection = True
        if level == ProtectionLevel.MAXIMUM:
            mechanisms.commit_reveal = True
            mechanisms.private_mempool = True
        return mechanisms


@dataclass
class ProtectionConfig:
    """MEV protection configuration."""
    authority: str
    max_price_impact_bps: int = 500
    min_time_delay: int = 10                   # seconds
    max_slippage_protection_bps: int = 200
    is_active: bool = True

    def __post_init__(self):
        validate_protection_settings(
            self.max_price_impact_bps, self.min_time_delay, self.max_slippage_protection_bps
        )


def validate_protection_settings(
    max_price_impact_bps: Optional[int] = None,
    min_time_delay: Optional[int] = None,
    max_slippage_protection_bps: Optional[int] = None
) -> None:
    if max_price_impact_bps is not None and not 0 <= max_price_impact_bps <= MAX_PRICE_IMPACT_BPS:
        raise PriceImpactTooHigh(
            f"Max price impact {max_price_impact_bps} bps exceeds {MAX_PRICE_IMPACT_BPS}"
        )
    if min_time_delay is not None and not 0 <= min_time_delay <= MAX_TIME_DELAY_SECONDS:
        raise InvalidTimeDelay(
            f"Time delay must be within 0..{MAX_TIME_DELAY_SECONDS} seconds, got {min_time_delay}"
        )
    if (max_slippage_protection_bps is not None
            and not 0 <= max_slippage_protection_bps <= MAX_SLIPPAGE_PROTECTION_BPS):
        raise SlippageTooHigh(
            f"Max slippage protection {max_slippage_protection_bps} bps exceeds "
            f"{MAX_SLIPPAGE_PROTECTION_BPS}"
        )


@dataclass
class ProtectedTransaction:
    """A swap intent held under MEV protection."""
    transaction_id: str
    owner: str
    params: TransactionParams
    protection_level: ProtectionLevel
    mechanisms: ProtectionMechanisms
    nonce: int
    created_at: int
    execution_deadline: int
    status: TransactionStatus = TransactionStatus.PENDING
    executed_at: Optional[int] = None
    cancelled_at: Optional[int] = None
    risk_deferred: bool = False
    protection_fee: int = 0
    execution: Optional[ExecutionRecord] = None
    last_assessment: Optional[RiskAssessment] = None
    last_detection: Optional[SandwichDetection] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != TransactionStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "owner": self.owner,
            "status": self.status.value,
            "protection_level": self.protection_level.value,
            "mechanisms": dict(vars(self.mechanisms)),
            "input_token": self.params.input_token,
            "output_token": self.params.output_token,
            "input_amount": self.params.input_amount,
            "min_output_amount": self.params.min_output_amount,
            "max_slippage_bps": self.params.max_slippage_bps,
            "nonce": self.nonce,
            "created_at": self.created_at,
            "execution_deadline": self.execution_deadline,
            "executed_at": self.executed_at,
            "cancelled_at": self.cancelled_at,
            "risk_deferred": self.risk_deferred,
            "protection_fee": self.protection_fee,
            "risk_level": self.last_assessment.risk_level.value if self.last_assessment else None,
            "execution": self.execution.to_dict() if self.execution else None,
        }


class ProtectionScheduler:
    """
    Keyed store and state machine for protected transactions.

    Transactions are keyed by ``(owner, nonce)`` with a per-owner nonce and
    exposed under the id ``"<owner>:<nonce>"``.
    """

    def __init__(
        self,
        router: RouterService,
        config: ProtectionConfig,
        risk_engine: Optional[MEVRiskEngine] = None,
        event_log: Optional[EventLog] = None,
        counters: Optional[CounterSet] = None,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize protection scheduler.

        Args:
            router: Router service used to execute released transactions
            config: Protection configuration
            risk_engine: Risk engine (a default engine when omitted)
            event_log: Event log for lifecycle events
            counters: Protection counters; a fresh set is created when omitted
            clock: Source of the current unix time when callers pass none
        """
        self.router = router
        self.config = config
        self.risk_engine = risk_engine or MEVRiskEngine()
        self.event_log = event_log if event_log is not None else EventLog()
        self.counters = counters or CounterSet("protection", PROTECTION_COUNTERS)
        self.clock = clock
        self.reports = AttackReportBook(config.authority, self.event_log)

        self._transactions: Dict[Tuple[str, int], ProtectedTransaction] = {}
        self._nonces: Dict[str, int] = {}
        self._in_flight: Set[str] = set()

    def create(
        self,
        owner: str,
        params: TransactionParams,
        level: ProtectionLevel = ProtectionLevel.BASIC,
        now: Optional[int] = None
    ) -> ProtectedTransaction:
        """
        Submit a swap intent for protected execution.

        Args:
            owner: Submitting identity; only the owner may execute or cancel
            params: Swap intent
            level: Protection tier
            now: Current unix time (defaults to the scheduler clock)

        Returns:
            The Pending protected transaction

        Raises:
            ProtectionInactive: If protection is disabled
            InvalidAmount: If input or minimum output is not positive
            SlippageTooHigh: If the tolerance exceeds max_slippage_protection
        """
        if not self.config.is_active:
            raise ProtectionInactive()
        if not owner:
            raise Unauthorized("Owner identity is required")
        self._validate_params(params)

        now = self._now(now)
        mechanisms = ProtectionMechanisms.for_level(level)
        base_delay = self.config.min_time_delay

        deadline = now + base_delay
        if level == ProtectionLevel.ADVANCED:
            deadline += base_delay // 2
        elif level == ProtectionLevel.MAXIMUM:
            deadline += base_delay

        nonce = self._nonces.get(owner, 0) + 1
        self._nonces[owner] = nonce

        transaction = ProtectedTransaction(
            transaction_id=f"{owner}:{nonce}",
            owner=owner,
            params=params,
            protection_level=level,
            mechanisms=mechanisms,
            nonce=nonce,
            created_at=now,
            execution_deadline=deadline,
            protection_fee=apply_bps(params.input_amount, PROTECTION_FEE_BPS[level]),
        )
        self._transactions[(owner, nonce)] = transaction

        logger.info(
            f"Protected transaction {transaction.transaction_id} created "
            f"({level.value}, deadline {deadline})"
        )
        self.event_log.emit(
            EventType.PROTECTED_TRANSACTION_CREATED,
            transaction_id=transaction.transaction_id,
            user=owner,
            protection_level=level.value,
            execution_deadline=deadline,
        )
        return transaction

    async def execute(
        self,
        transaction_id: str,
        caller: str,
        now: Optional[int] = None
    ) -> ProtectedTransaction:
        """
        Release a protected transaction for execution.

        Raises:
            TransactionNotFound: If the id is unknown
            Unauthorized: If the caller is not the owner
            InvalidTransactionStatus: If not Pending or already executing
            ExecutionTooEarly: If the deadline has not been reached
            SandwichAttackDetected: If an attack pattern is detected (now Blocked)
            PriceImpactTooHigh: If the price impact check fails (stays Pending)
            ExecutionDeferred: If high risk extended the deadline (stays Pending)
        """
        transaction = self.get(transaction_id)
        if caller != transaction.owner:
            raise Unauthorized(f"{caller!r} does not own {transaction_id}")
        self._ensure_pending(transaction)

        now = self._now(now)
        if now < transaction.execution_deadline:
            raise ExecutionTooEarly(
                f"{transaction_id} executable at {transaction.execution_deadline}, now {now}"
            )

        self._in_flight.add(transaction_id)
        try:
            await self._release(transaction, now)
        finally:
            self._in_flight.discard(transaction_id)
        return transaction

    async def _release(self, transaction: ProtectedTransaction, now: int) -> None:
        params = transaction.params
        assessment = self.risk_engine.assess(params, now)
        detection = self.risk_engine.detect_sandwich(params, now)
        transaction.last_assessment = assessment
        transaction.last_detection = detection

        if detection.is_detected:
            await self._block(transaction, detection, now)

        if (transaction.mechanisms.price_impact_check
                and assessment.price_impact_bps > self.config.max_price_impact_bps):
            raise PriceImpactTooHigh(
                f"Estimated price impact {assessment.price_impact_bps} bps exceeds "
                f"{self.config.max_price_impact_bps}"
            )

        if assessment.requires_deferral and not transaction.risk_deferred:
            self._defer(transaction, assessment)

        record = await self.router.execute_optimal_route(ArbitrageRequest(
            input_token=params.input_token,
            output_token=params.output_token,
            input_amount=params.input_amount,
            min_output_amount=params.min_output_amount,
            max_slippage_bps=params.max_slippage_bps,
            max_hops=params.max_hops,
            preferred_venues=params.venues,
        ))

        increments = {"transactions_protected": 1, "protection_fees": transaction.protection_fee}
        self.counters.validate(increments)
        transaction.status = TransactionStatus.EXECUTED
        transaction.executed_at = now
        transaction.execution = record
        await self.counters.apply(increments)

        logger.info(
            f"Protected transaction {transaction.transaction_id} executed: "
            f"output={record.actual_output} risk={assessment.risk_level.value}"
        )
        self.event_log.emit(
            EventType.PROTECTED_TRANSACTION_EXECUTED,
            transaction_id=transaction.transaction_id,
            user=transaction.owner,
            input_amount=params.input_amount,
            output_amount=record.actual_output,
            protection_fee=transaction.protection_fee,
            mev_risk_level=assessment.risk_level.value,
        )

    async def _block(
        self,
        transaction: ProtectedTransaction,
        detection: SandwichDetection,
        now: int
    ) -> None:
        self.counters.validate({"attacks_prevented": 1})
        transaction.status = TransactionStatus.BLOCKED
        await self.counters.apply({"attacks_prevented": 1})

        logger.warning(
            f"Blocked {transaction.transaction_id}: {detection.attack_type.value} "
            f"score={detection.risk_score} confidence={detection.confidence_bps}bps"
        )
        self.event_log.emit(
            EventType.SANDWICH_ATTACK_DETECTED,
            transaction_id=transaction.transaction_id,
            user=transaction.owner,
            attack_type=detection.attack_type.value,
            risk_score=detection.risk_score,
            confidence_bps=detection.confidence_bps,
            timestamp=now,
        )
        raise SandwichAttackDetected(
            f"{detection.attack_type.value} pattern detected for {transaction.transaction_id}",
            details={"risk_score": detection.risk_score, "confidence_bps": detection.confidence_bps},
        )

    def _defer(self, transaction: ProtectedTransaction, assessment: RiskAssessment) -> None:
        base_delay = self.config.min_time_delay
        if assessment.risk_level == RiskLevel.HIGH:
            transaction.execution_deadline += base_delay // 2
        else:
            transaction.execution_deadline += base_delay
            transaction.mechanisms.commit_reveal = True
            transaction.mechanisms.private_mempool = True
        transaction.risk_deferred = True

        logger.warning(
            f"Deferred {transaction.transaction_id}: {assessment.risk_level.value} risk "
            f"(score {assessment.risk_score}), new deadline {transaction.execution_deadline}"
        )
        raise ExecutionDeferred(
            f"{assessment.risk_level.value} MEV risk; retry after {transaction.execution_deadline}",
            details={
                "risk_score": assessment.risk_score,
                "execution_deadline": transaction.execution_deadline,
            },
        )

    def cancel(
        self,
        transaction_id: str,
        caller: str,
        now: Optional[int] = None
    ) -> ProtectedTransaction:
        """
        Cancel a Pending transaction before its deadline.

        Raises:
            InvalidTransactionStatus: If not Pending or an execution is in flight
            Unauthorized: If the caller is not the owner
            CancellationWindowClosed: If the deadline has passed
        """
        transaction = self.get(transaction_id)
        self._ensure_pending(transaction)
        if caller != transaction.owner:
            raise Unauthorized(f"{caller!r} does not own {transaction_id}")

        now = self._now(now)
        if now >= transaction.execution_deadline:
            raise CancellationWindowClosed(
                f"{transaction_id} reached its deadline at {transaction.execution_deadline}"
            )

        transaction.status = TransactionStatus.CANCELLED
        transaction.cancelled_at = now

        logger.info(f"Protected transaction {transaction_id} cancelled by owner")
        self.event_log.emit(
            EventType.PROTECTED_TRANSACTION_CANCELLED,
            transaction_id=transaction_id,
            user=transaction.owner,
            cancelled_at=now,
        )
        return transaction

    def update_config(
        self,
        caller: str,
        max_price_impact_bps: Optional[int] = None,
        min_time_delay: Optional[int] = None,
        max_slippage_protection_bps: Optional[int] = None,
        is_active: Optional[bool] = None
    ) -> ProtectionConfig:
        """Update protection configuration (authority only)."""
        authorize(caller, self.config.authority)
        validate_protection_settings(max_price_impact_bps, min_time_delay, max_slippage_protection_bps)

        if max_price_impact_bps is not None:
            self.config.max_price_impact_bps = max_price_impact_bps
        if min_time_delay is not None:
            self.config.min_time_delay = min_time_delay
        if max_slippage_protection_bps is not None:
            self.config.max_slippage_protection_bps = max_slippage_protection_bps
        if is_active is not None:
            self.config.is_active = is_active

        self.event_log.emit(
            EventType.PROTECTION_CONFIG_UPDATED,
            authority=caller,
            max_price_impact_bps=self.config.max_price_impact_bps,
            min_time_delay=self.config.min_time_delay,
            max_slippage_protection_bps=self.config.max_slippage_protection_bps,
            is_active=self.config.is_active,
        )
        return self.config

    def report_attack(
        self,
        reporter: str,
        details: AttackDetails,
        now: Optional[int] = None
    ) -> AttackReport:
        return self.reports.report_attack(reporter, details, self._now(now))

    def resolve_report(
        self,
        caller: str,
        report_id: str,
        status: ReportStatus,
        now: Optional[int] = None
    ) -> AttackReport:
        return self.reports.resolve_report(caller, report_id, status, self._now(now))

    def get(self, transaction_id: str) -> ProtectedTransaction:
        """
        Look up a transaction by its ``"<owner>:<nonce>"`` id.

        Raises:
            TransactionNotFound: If the id is malformed or unknown
        """
        owner, _, nonce = transaction_id.rpartition(":")
        transaction = None
        if owner and nonce.isdigit():
            transaction = self._transactions.get((owner, int(nonce)))
        if transaction is None:
            raise TransactionNotFound(f"Protected transaction {transaction_id} not found")
        return transaction

    def list_transactions(self, owner: Optional[str] = None) -> List[ProtectedTransaction]:
        return [
            transaction for (tx_owner, _), transaction in self._transactions.items()
            if owner is None or tx_owner == owner
        ]

    def get_stats(self) -> Dict[str, Any]:
        by_status: Dict[str, int] = {status.value: 0 for status in TransactionStatus}
        for transaction in self._transactions.values():
            by_status[transaction.status.value] += 1
        return {
            "is_active": self.config.is_active,
            "transactions": by_status,
            "attack_reports": len(self.reports),
            **self.counters.snapshot(),
        }

    def _validate_params(self, params: TransactionParams) -> None:
        if params.input_amount <= 0:
            raise InvalidAmount(f"Input amount must be positive, got {params.input_amount}")
        if params.min_output_amount <= 0:
            raise InvalidAmount(f"Minimum output must be positive, got {params.min_output_amount}")
        ensure_amount(params.input_amount, "input_amount")
        ensure_amount(params.min_output_amount, "min_output_amount")
        if params.max_slippage_bps > self.config.max_slippage_protection_bps:
            raise SlippageTooHigh(
                f"Slippage {params.max_slippage_bps} bps exceeds protection limit "
                f"{self.config.max_slippage_protection_bps}"
            )

    def _ensure_pending(self, transaction: ProtectedTransaction) -> None:
        if transaction.transaction_id in self._in_flight:
            raise InvalidTransactionStatus(f"{transaction.transaction_id} is already executing")
        if transaction.status != TransactionStatus.PENDING:
            raise InvalidTransactionStatus(
                f"{transaction.transaction_id} is {transaction.status.value}"
            )

    def _now(self, now: Optional[int]) -> int:
        return int(self.clock()) if now is None else now
