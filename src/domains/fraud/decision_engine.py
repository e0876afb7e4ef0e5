"""Turns a risk score plus rule evidence into an approve/reject/review verdict."""

from collections.abc import Sequence
from decimal import Decimal

import structlog

from .config import FraudConfig, default_config
from .models import Decision, DecisionMetrics, FraudDetectionResult, RuleResult

logger = structlog.get_logger()

MULTI_HIGH_SEVERITY_REJECT_SCORE = Decimal("75")
MULTI_RULE_REVIEW_SCORE = Decimal("50")
ESCALATION_SCORE = Decimal("80")

BASE_CONFIDENCE = Decimal("50")
MAX_CONFIDENCE = Decimal("95")
CRITICAL_RULE_CONFIDENCE = Decimal("10")
# (minimum score, confidence added); first match wins
SCORE_CONFIDENCE_BANDS = (
    (Decimal("80"), Decimal("30")),
    (Decimal("60"), Decimal("20")),
    (Decimal("40"), Decimal("10")),
)
# (minimum triggered rules, confidence added); first match wins
RULE_COUNT_CONFIDENCE_BANDS = (
    (3, Decimal("15")),
    (2, Decimal("10")),
    (1, Decimal("5")),
)

APPROVE_REASON = "Risk score below threshold and no critical fraud indicators detected"


class FraudDecisionEngine:
    """Maps a total risk score and triggered rules to a ``Decision``.

    Order of evaluation: reject, then manual review, then approve. Rejected
    and review decisions carry the computed confidence level; approvals keep
    the fixed approval confidence. Confidence is monotonic in score and
    triggered-rule count only within ``calculate_confidence``; across the
    approve/review boundary it drops from the fixed 95 to the computed value.
    """

    def __init__(self, config: FraudConfig | None = None) -> None:
        self._config = config or default_config

    def make_decision(self, result: FraudDetectionResult) -> Decision:
        risk_score = result.risk_score if result.risk_score is not None else Decimal("0")
        decision = self.decide(risk_score, result.rule_results)

        logger.info(
            "fraud_decision_made",
            transaction_id=result.transaction_id,
            decision=decision.decision.value,
            confidence=str(decision.confidence_level),
            risk_score=str(risk_score),
            escalate=decision.requires_escalation,
        )
        return decision

    def decide(self, risk_score: Decimal, rule_results: Sequence[RuleResult]) -> Decision:
        thresholds = self._config.decision
        triggered = [r for r in rule_results if r.triggered]
        critical = self.has_critical_rule_violation(triggered)
        multi_high = self.has_multiple_high_severity_rules(triggered)
        factors = self._contributing_factors(risk_score, critical, multi_high, triggered)

        if (
            risk_score >= thresholds.auto_reject_threshold
            or (critical and risk_score >= thresholds.manual_review_threshold)
            or (multi_high and risk_score >= MULTI_HIGH_SEVERITY_REJECT_SCORE)
        ):
            decision = Decision.rejected(
                self._reject_reason(risk_score, critical, multi_high), factors
            )
        elif (
            risk_score >= thresholds.manual_review_threshold
            or critical
            or (risk_score >= MULTI_RULE_REVIEW_SCORE and len(triggered) >= 2)
            or any(r.is_high_severity for r in triggered)
        ):
            escalate = risk_score >= ESCALATION_SCORE or critical or multi_high
            decision = Decision.requires_review(
                self._review_reason(risk_score, critical, triggered), factors, escalate
            )
        else:
            return Decision.approved(APPROVE_REASON)

        decision.confidence_level = self.calculate_confidence(risk_score, triggered)
        return decision

    def calculate_confidence(
        self, risk_score: Decimal, rule_results: Sequence[RuleResult]
    ) -> Decimal:
        triggered = [r for r in rule_results if r.triggered]
        confidence = BASE_CONFIDENCE

        for minimum, points in SCORE_CONFIDENCE_BANDS:
            if risk_score >= minimum:
                confidence += points
                break

        for minimum, points in RULE_COUNT_CONFIDENCE_BANDS:
            if len(triggered) >= minimum:
                confidence += points
                break

        if self.has_critical_rule_violation(triggered):
            confidence += CRITICAL_RULE_CONFIDENCE

        return min(confidence, MAX_CONFIDENCE)

    def has_critical_rule_violation(self, rule_results: Sequence[RuleResult]) -> bool:
        critical_rules = set(self._config.decision.critical_rules)
        return any(r.triggered and r.rule_name in critical_rules for r in rule_results)

    @staticmethod
    def has_multiple_high_severity_rules(rule_results: Sequence[RuleResult]) -> bool:
        return sum(1 for r in rule_results if r.triggered and r.is_high_severity) >= 2

    def decision_metrics(
        self, risk_score: Decimal, rule_results: Sequence[RuleResult]
    ) -> DecisionMetrics:
        thresholds = self._config.decision
        triggered = [r for r in rule_results if r.triggered]
        return DecisionMetrics(
            risk_score=risk_score,
            confidence_level=self.calculate_confidence(risk_score, triggered),
            triggered_rule_count=len(triggered),
            has_critical_rule_violation=self.has_critical_rule_violation(triggered),
            has_multiple_high_severity_rules=self.has_multiple_high_severity_rules(triggered),
            auto_approve_threshold=thresholds.auto_approve_threshold,
            manual_review_threshold=thresholds.manual_review_threshold,
            auto_reject_threshold=thresholds.auto_reject_threshold,
            high_confidence_threshold=thresholds.high_confidence_threshold,
        )

    def _reject_reason(self, risk_score: Decimal, critical: bool, multi_high: bool) -> str:
        parts = []
        if risk_score >= self._config.decision.auto_reject_threshold:
            parts.append(f"Very high risk score ({risk_score})")
        if critical:
            parts.append("Critical fraud rule violation")
        if multi_high:
            parts.append("Multiple high-severity fraud indicators")
        return "Transaction rejected due to: " + "; ".join(parts)

    def _review_reason(
        self, risk_score: Decimal, critical: bool, triggered: Sequence[RuleResult]
    ) -> str:
        parts = []
        if risk_score >= self._config.decision.manual_review_threshold:
            parts.append(f"High risk score ({risk_score})")
        if critical:
            parts.append("Critical fraud rule triggered")
        if len(triggered) >= 2:
            parts.append(f"Multiple fraud indicators ({len(triggered)})")
        if not parts:
            parts.append("High-severity fraud indicator")
        return "Manual review required due to: " + "; ".join(parts)

    @staticmethod
    def _contributing_factors(
        risk_score: Decimal,
        critical: bool,
        multi_high: bool,
        triggered: Sequence[RuleResult],
    ) -> list[str]:
        factors = [f"Risk Score: {risk_score}"]
        if critical:
            factors.append("Critical Rule Violation")
        if multi_high:
            factors.append("Multiple High-Severity Rules")
        for rule in triggered:
            factors.append(f"{rule.rule_name} (Score: {rule.score}, Severity: {rule.severity})")
        return factors
