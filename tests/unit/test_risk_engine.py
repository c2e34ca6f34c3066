"""Unit tests for MEV risk scoring and sandwich detection."""
import pytest

from arbitrage_router.mev_protection import (
    AttackType, MEVRiskEngine, RiskLevel, TransactionParams, assess_mev_risk,
    detect_sandwich_attack
)

SOL = "So11111111111111111111111111111111111111112"
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

QUIET_NOW = 1_000_050   # 30 seconds into the minute
BUSY_NOW = 1_000_020    # first seconds of the minute


def _params(amount: int, slippage: int) -> TransactionParams:
    return TransactionParams(
        input_token=SOL,
        output_token=USDC,
        input_amount=amount,
        min_output_amount=1,
        max_slippage_bps=slippage,
    )


class TestMEVRiskEngine:
    """Test suite for MEVRiskEngine.assess."""

    @pytest.fixture
    def engine(self):
        return MEVRiskEngine()

    def test_large_trade_with_loose_slippage_is_critical(self, engine):
        """2,000 tokens at 6% slippage scores 300 + 400 + 500."""
        assessment = engine.assess(_params(2_000_000_000, 600), QUIET_NOW)

        assert assessment.risk_score == 1_200
        assert assessment.risk_level == RiskLevel.CRITICAL
        assert assessment.price_impact_bps == 500
        assert assessment.liquidity_risk == 800
        assert assessment.requires_deferral

    @pytest.mark.parametrize("amount,slippage,score,level", [
        (100_000_000, 100, 0, RiskLevel.LOW),
        (50_000_000, 150, 200, RiskLevel.LOW),
        (150_000_000, 50, 400, RiskLevel.MEDIUM),
        (200_000_000, 150, 600, RiskLevel.HIGH),
        (2_000_000_000, 50, 800, RiskLevel.HIGH),
        (2_000_000_000, 300, 1_000, RiskLevel.CRITICAL),
    ])
    def test_score_and_level(self, engine, amount, slippage, score, level):
        assessment = engine.assess(_params(amount, slippage), QUIET_NOW)
        assert assessment.risk_score == score
        assert assessment.risk_level == level

    def test_thresholds_are_strict(self, engine):
        assert engine.estimate_price_impact(100_000_000) == 50
        assert engine.estimate_price_impact(100_000_001) == 200
        assert engine.estimate_price_impact(1_000_000_001) == 500

    def test_score_is_monotonic_in_amount_and_slippage(self, engine):
        amounts = [1, 100_000_000, 100_000_001, 1_000_000_000, 1_000_000_001, 10**12]
        slippages = [0, 100, 101, 500, 501, 1_000]

        for slippage in slippages:
            scores = [engine.assess(_params(a, slippage), QUIET_NOW).risk_score for a in amounts]
            assert scores == sorted(scores)
        for amount in amounts:
            scores = [engine.assess(_params(amount, s), QUIET_NOW).risk_score for s in slippages]
            assert scores == sorted(scores)

    def test_assessment_is_idempotent(self, engine):
        params = _params(300_000_000, 250)
        assert engine.assess(params, QUIET_NOW) == engine.assess(params, QUIET_NOW)

    def test_timing_risk_uses_clock(self, engine):
        assert engine.assess(_params(1, 0), QUIET_NOW).timing_risk == 50

    def test_convenience_function(self):
        assert assess_mev_risk(_params(2_000_000_000, 600), QUIET_NOW).risk_score == 1_200


class TestSandwichDetection:
    """Test suite for MEVRiskEngine.detect_sandwich."""

    @pytest.fixture
    def engine(self):
        return MEVRiskEngine()

    def test_no_signals(self, engine):
        detection = engine.detect_sandwich(_params(1_000_000, 50), QUIET_NOW)

        assert not detection.is_detected
        assert detection.risk_score == 0
        assert detection.attack_type == AttackType.NONE
        assert detection.confidence_bps == 2_000

    def test_sandwich_pattern_alone_is_not_detected(self, engine):
        detection = engine.detect_sandwich(_params(600_000_000, 400), QUIET_NOW)

        assert detection.risk_score == 400
        assert detection.attack_type == AttackType.SANDWICH
        assert not detection.is_detected
        assert detection.confidence_bps == 5_000

    def test_score_of_exactly_600_is_not_detected(self, engine):
        detection = engine.detect_sandwich(_params(600_000_000, 400), BUSY_NOW)

        assert detection.risk_score == 600
        assert not detection.is_detected

    def test_sandwich_with_frontrun_signal_is_detected(self, engine):
        detection = engine.detect_sandwich(_params(600_000_000, 600), QUIET_NOW)

        assert detection.is_detected
        assert detection.risk_score == 700
        assert detection.attack_type == AttackType.SANDWICH
        assert detection.confidence_bps == 8_000

    def test_frontrun_only(self, engine):
        detection = engine.detect_sandwich(_params(1_000, 600), QUIET_NOW)

        assert detection.attack_type == AttackType.FRONTRUN
        assert detection.risk_score == 300
        assert detection.confidence_bps == 2_000

    def test_all_signals(self, engine):
        detection = detect_sandwich_attack(_params(600_000_000, 600), BUSY_NOW)

        assert detection.risk_score == 900
        assert detection.is_detected
        assert detection.confidence_bps == 8_000
