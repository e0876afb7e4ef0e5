"""Fraud detection domain."""

from .config import FraudConfig, default_config
from .decision_engine import FraudDecisionEngine
from .exceptions import AlertNotFoundError, FraudDetectionError
from .models import (
    Decision,
    DecisionType,
    FraudAlert,
    FraudAlertStatus,
    FraudDetectionResult,
    RuleResult,
    RuleSeverity,
    Transaction,
)
from .risk_scoring import RiskScoringService
from .rules import GeoAnomalyRule, VelocityRule, build_rules
from .rules_engine import RulesEngine
from .service import FraudDetectionService
from .store import FraudStore, SQLAlchemyFraudStore

__all__ = [
    "AlertNotFoundError",
    "Decision",
    "DecisionType",
    "FraudAlert",
    "FraudAlertStatus",
    "FraudConfig",
    "FraudDecisionEngine",
    "FraudDetectionError",
    "FraudDetectionResult",
    "FraudDetectionService",
    "FraudStore",
    "GeoAnomalyRule",
    "RiskScoringService",
    "RuleResult",
    "RuleSeverity",
    "RulesEngine",
    "SQLAlchemyFraudStore",
    "Transaction",
    "VelocityRule",
    "build_rules",
    "default_config",
]
