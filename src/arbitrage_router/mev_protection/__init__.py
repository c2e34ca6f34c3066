"""
MEV Protection Layer.

Risk scoring and sandwich detection for swap intents, the protected
transaction state machine that gates execution behind them, and community
attack reporting.
"""
from .risk_engine import (
    MEVRiskEngine,
    RiskLevel,
    AttackType,
    RiskAssessment,
    SandwichDetection,
    TransactionParams,
    assess_mev_risk,
    detect_sandwich_attack
)
from .protection_scheduler import (
    ProtectionScheduler,
    ProtectionConfig,
    ProtectionLevel,
    ProtectionMechanisms,
    ProtectedTransaction,
    TransactionStatus,
    PROTECTION_FEE_BPS
)
from .attack_reports import (
    AttackReportBook,
    AttackReport,
    AttackDetails,
    ReportStatus
)

__all__ = [
    # Risk Assessment
    "MEVRiskEngine",
    "RiskLevel",
    "AttackType",
    "RiskAssessment",
    "SandwichDetection",
    "TransactionParams",
    "assess_mev_risk",
    "detect_sandwich_attack",

    # Protected Transactions
    "ProtectionScheduler",
    "ProtectionConfig",
    "ProtectionLevel",
    "ProtectionMechanisms",
    "ProtectedTransaction",
    "TransactionStatus",
    "PROTECTION_FEE_BPS",

    # Attack Reports
    "AttackReportBook",
    "AttackReport",
    "AttackDetails",
    "ReportStatus"
]
