"""
MEV Risk Engine.

Scores a swap intent for MEV exposure from its size and slippage tolerance and
runs a heuristic sandwich/front-running detector. Both checks are pure
functions of the request and the supplied clock: identical inputs always
produce identical results, and nothing is cached between calls.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

logger = logging.getLogger(__name__)


class RiskLevel(str, Enum):
    """MEV risk levels for categorization."""
    LOW = "low"             # score <= 200
    MEDIUM = "medium"       # score <= 500
    HIGH = "high"           # score <= 800 - defer with extra delay
    CRITICAL = "critical"   # above 800 - defer with maximum delay


class AttackType(str, Enum):
    """Attack kinds recognised by detection and reporting."""
    NONE = "none"
    SANDWICH = "sandwich"
    FRONTRUN = "frontrun"
    BACKRUN = "backrun"
    JUST_IN_TIME = "just_in_time"


@dataclass
class TransactionParams:
    """Swap intent assessed by the risk engine and executed under protection."""
    input_token: str
    output_token: str
    input_amount: int
    min_output_amount: int
    max_slippage_bps: int
    venue: Optional[str] = None
    max_hops: int = 1
    preferred_venues: List[str] = field(default_factory=list)

    @property
    def venues(self) -> List[str]:
        if self.preferred_venues:
            return list(self.preferred_venues)
        if self.venue:
            return [self.venue]
        return []


@dataclass(frozen=True)
class RiskAssessment:
    """Result of a risk assessment."""
    risk_score: int
    risk_level: RiskLevel
    price_impact_bps: int
    liquidity_risk: int
    timing_risk: int

    @property
    def requires_deferral(self) -> bool:
        return self.risk_level in (RiskLevel.HIGH, RiskLevel.CRITICAL)


@dataclass(frozen=True)
class SandwichDetection:
    """Result of sandwich/front-running detection."""
    is_detected: bool
    risk_score: int
    attack_type: AttackType
    confidence_bps: int


class MEVRiskEngine:
    """
    Heuristic MEV risk scoring.

    Thresholds are expressed in raw token units (6 decimals, so 1_000_000_000
    is 1,000 tokens) and basis points.
    """

    def __init__(self):
        """Initialize risk engine with its scoring tables."""
        # (threshold, score) pairs, checked in order; first match wins
        self.size_scores = [(1_000_000_000, 300), (100_000_000, 150)]
        self.slippage_scores = [(500, 400), (100, 200)]
        self.impact_scores = [(300, 500), (100, 250)]

        # (size threshold, value) tables with a fallback for small trades
        self.price_impact_table = [(1_000_000_000, 500), (100_000_000, 200)]
        self.default_price_impact_bps = 50
        self.liquidity_risk_table = [(1_000_000_000, 800), (100_000_000, 400)]
        self.default_liquidity_risk = 100

        self.level_bounds = [
            (200, RiskLevel.LOW),
            (500, RiskLevel.MEDIUM),
            (800, RiskLevel.HIGH),
        ]

        self.sandwich_amount_threshold = 500_000_000
        self.sandwich_slippage_threshold = 300
        self.frontrun_slippage_threshold = 500
        self.detection_threshold = 600
        self.confidence_table = [(300, 2000), (600, 5000), (900, 8000)]
        self.max_confidence_bps = 9500

    def assess(self, params: TransactionParams, now: int) -> RiskAssessment:
        """
        Assess MEV risk for a swap intent.

        Args:
            params: Swap intent
            now: Current unix time in seconds

        Returns:
            RiskAssessment with score, level and component risks
        """
        price_impact = self.estimate_price_impact(params.input_amount)

        risk_score = (
            _first_match(params.input_amount, self.size_scores, 0)
            + _first_match(params.max_slippage_bps, self.slippage_scores, 0)
            + _first_match(price_impact, self.impact_scores, 0)
        )

        assessment = RiskAssessment(
            risk_score=risk_score,
            risk_level=self._categorize_risk_level(risk_score),
            price_impact_bps=price_impact,
            liquidity_risk=self._calculate_liquidity_risk(params.input_amount),
            timing_risk=self._calculate_timing_risk(now),
        )

        logger.debug(
            f"MEV risk for {params.input_amount} @ {params.max_slippage_bps}bps: "
            f"score={risk_score} level={assessment.risk_level.value}"
        )
        return assessment

    def detect_sandwich(self, params: TransactionParams, now: int) -> SandwichDetection:
        """
        Detect sandwich or front-running exposure.

        The timing signal (``now % 60 < 5``) is a placeholder for mempool
        analysis.
        """
        risk_score = 0
        attack_type = AttackType.NONE

        if (params.input_amount > self.sandwich_amount_threshold
                and params.max_slippage_bps > self.sandwich_slippage_threshold):
            risk_score += 400
            attack_type = AttackType.SANDWICH

        if now % 60 < 5:
            risk_score += 200

        if params.max_slippage_bps > self.frontrun_slippage_threshold:
            risk_score += 300
            if attack_type == AttackType.NONE:
                attack_type = AttackType.FRONTRUN

        return SandwichDetection(
            is_detected=risk_score > self.detection_threshold,
            risk_score=risk_score,
            attack_type=attack_type,
            confidence_bps=self._calculate_detection_confidence(risk_score),
        )

    def estimate_price_impact(self, input_amount: int) -> int:
        return _first_match(input_amount, self.price_impact_table, self.default_price_impact_bps)

    def _calculate_liquidity_risk(self, input_amount: int) -> int:
        return _first_match(input_amount, self.liquidity_risk_table, self.default_liquidity_risk)

    @staticmethod
    def _calculate_timing_risk(now: int) -> int:
        return now % 1000

    def _categorize_risk_level(self, risk_score: int) -> RiskLevel:
        for bound, level in self.level_bounds:
            if risk_score <= bound:
                return level
        return RiskLevel.CRITICAL

    def _calculate_detection_confidence(self, risk_score: int) -> int:
        for bound, confidence in self.confidence_table:
            if risk_score <= bound:
                return confidence
        return self.max_confidence_bps


def _first_match(value: int, table, default: int) -> int:
    """Value of the first ``(threshold, result)`` row with ``value > threshold``."""
    for threshold, result in table:
        if value > threshold:
            return result
    return default


# Convenience functions

def assess_mev_risk(params: TransactionParams, now: int) -> RiskAssessment:
    """Quick function to assess a single swap intent."""
    return MEVRiskEngine().assess(params, now)


def detect_sandwich_attack(params: TransactionParams, now: int) -> SandwichDetection:
    """Quick function to run sandwich detection on a single swap intent."""
    return MEVRiskEngine().detect_sandwich(params, now)
