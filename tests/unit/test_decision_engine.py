"""Unit tests for the fraud decision engine."""

from decimal import Decimal

import pytest

from src.domains.fraud.config import FraudConfig
from src.domains.fraud.decision_engine import APPROVE_REASON, FraudDecisionEngine
from src.domains.fraud.models import (
    DecisionType,
    FraudDetectionResult,
    RuleResult,
    RuleSeverity,
    severity_for_score,
)

ENGINE = FraudDecisionEngine(FraudConfig())


def _rule(name: str, score: str, triggered: bool = True) -> RuleResult:
    value = Decimal(score)
    return RuleResult(
        rule_name=name, triggered=triggered, score=value, severity=severity_for_score(value)
    )


class TestDecide:
    def test_low_score_approved(self):
        decision = ENGINE.decide(Decimal("20"), [])
        assert decision.decision == DecisionType.APPROVED
        assert decision.confidence_level == Decimal("95")
        assert decision.reason == APPROVE_REASON
        assert decision.recommended_action == "PROCESS_TRANSACTION"
        assert not decision.requires_escalation

    @pytest.mark.parametrize("score", ["85", "85.01", "92.5", "100"])
    def test_reject_threshold(self, score):
        decision = ENGINE.decide(Decimal(score), [])
        assert decision.decision == DecisionType.REJECTED
        assert decision.recommended_action == "BLOCK_TRANSACTION"
        assert "Very high risk score" in decision.reason

    def test_critical_rule_with_review_score_rejected(self):
        decision = ENGINE.decide(Decimal("70"), [_rule("VELOCITY_RULE", "55")])
        assert decision.decision == DecisionType.REJECTED
        assert "Critical fraud rule violation" in decision.reason
        assert "Critical Rule Violation" in decision.contributing_factors

    def test_critical_rule_with_low_score_reviewed_and_escalated(self):
        decision = ENGINE.decide(Decimal("40"), [_rule("GEO_LOCATION_RULE", "30")])
        assert decision.decision == DecisionType.REQUIRES_REVIEW
        assert decision.requires_escalation
        assert decision.escalation_reason is not None
        assert decision.recommended_action == "MANUAL_REVIEW"

    def test_multiple_high_severity_rejected(self):
        rules = [_rule("RULE_A", "75"), _rule("RULE_B", "72")]
        decision = ENGINE.decide(Decimal("76"), rules)
        assert decision.decision == DecisionType.REJECTED
        assert "Multiple High-Severity Rules" in decision.contributing_factors

    def test_multiple_high_severity_below_75_reviewed(self):
        rules = [_rule("RULE_A", "75"), _rule("RULE_B", "72")]
        decision = ENGINE.decide(Decimal("74"), rules)
        assert decision.decision == DecisionType.REQUIRES_REVIEW
        assert decision.requires_escalation

    def test_review_threshold_without_rules(self):
        decision = ENGINE.decide(Decimal("75"), [])
        assert decision.decision == DecisionType.REQUIRES_REVIEW
        assert not decision.requires_escalation
        assert "High risk score (75)" in decision.reason

    def test_review_escalated_at_80(self):
        decision = ENGINE.decide(Decimal("82"), [])
        assert decision.decision == DecisionType.REQUIRES_REVIEW
        assert decision.requires_escalation

    def test_two_rules_with_moderate_score_reviewed(self):
        rules = [_rule("RULE_A", "40"), _rule("RULE_B", "30")]
        decision = ENGINE.decide(Decimal("50"), rules)
        assert decision.decision == DecisionType.REQUIRES_REVIEW
        assert "Multiple fraud indicators (2)" in decision.reason

    def test_single_high_severity_rule_reviewed(self):
        decision = ENGINE.decide(Decimal("25"), [_rule("RULE_A", "80")])
        assert decision.decision == DecisionType.REQUIRES_REVIEW
        assert decision.reason == "Manual review required due to: High-severity fraud indicator"

    def test_untriggered_rules_ignored(self):
        decision = ENGINE.decide(Decimal("25"), [_rule("VELOCITY_RULE", "0", triggered=False)])
        assert decision.decision == DecisionType.APPROVED

    def test_reject_is_monotonic_in_score(self):
        rules = [_rule("RULE_A", "45")]
        rejected = False
        for step in range(0, 101):
            decision = ENGINE.decide(Decimal(step), rules)
            if rejected:
                assert decision.decision == DecisionType.REJECTED
            rejected = decision.decision == DecisionType.REJECTED
        assert rejected

    def test_contributing_factors_list_triggered_rules(self):
        decision = ENGINE.decide(Decimal("90"), [_rule("GEO_LOCATION_RULE", "95")])
        assert decision.contributing_factors[0] == "Risk Score: 90"
        assert "GEO_LOCATION_RULE (Score: 95, Severity: CRITICAL)" in decision.contributing_factors

    def test_custom_critical_rules(self):
        config = FraudConfig()
        config.decision.critical_rules = ()
        engine = FraudDecisionEngine(config)
        decision = engine.decide(Decimal("70"), [_rule("VELOCITY_RULE", "55")])
        assert decision.decision == DecisionType.REQUIRES_REVIEW


class TestConfidence:
    def test_baseline(self):
        assert ENGINE.calculate_confidence(Decimal("10"), []) == Decimal("50")

    def test_capped_at_95(self):
        rules = [_rule("VELOCITY_RULE", "90"), _rule("A", "50"), _rule("B", "50")]
        assert ENGINE.calculate_confidence(Decimal("90"), rules) == Decimal("95")

    def test_score_and_count_bands(self):
        assert ENGINE.calculate_confidence(Decimal("45"), [_rule("A", "45")]) == Decimal("65")
        rules = [_rule("A", "45"), _rule("B", "45")]
        assert ENGINE.calculate_confidence(Decimal("65"), rules) == Decimal("80")

    def test_monotonic_in_score(self):
        rules = [_rule("A", "60")]
        previous = Decimal("0")
        for step in range(0, 101, 5):
            confidence = ENGINE.calculate_confidence(Decimal(step), rules)
            assert confidence >= previous
            assert confidence <= Decimal("95")
            previous = confidence

    def test_monotonic_in_rule_count(self):
        previous = Decimal("0")
        for count in range(0, 5):
            rules = [_rule(f"R{i}", "40") for i in range(count)]
            confidence = ENGINE.calculate_confidence(Decimal("50"), rules)
            assert confidence >= previous
            previous = confidence

    def test_approval_confidence_above_review_boundary(self):
        approved = ENGINE.decide(Decimal("20"), [])
        reviewed = ENGINE.decide(Decimal("75"), [])
        assert approved.confidence_level == Decimal("95")
        # 50 + 20, lower than the fixed approval confidence
        assert reviewed.confidence_level == Decimal("70")
        assert reviewed.confidence_level < approved.confidence_level

    def test_rejected_decision_uses_computed_confidence(self):
        decision = ENGINE.decide(Decimal("77"), [_rule("GEO_LOCATION_RULE", "95")])
        assert decision.decision == DecisionType.REJECTED
        # 50 + 20 + 5 + 10
        assert decision.confidence_level == Decimal("85")


class TestMakeDecision:
    def test_uses_result_score_and_rules(self):
        result = FraudDetectionResult(
            transaction_id="txn-1",
            risk_score=Decimal("88"),
            rule_results=[_rule("VELOCITY_RULE", "70")],
        )
        decision = ENGINE.make_decision(result)
        assert decision.is_rejected

    def test_missing_score_treated_as_zero(self):
        decision = ENGINE.make_decision(FraudDetectionResult(transaction_id="txn-1"))
        assert decision.is_approved


class TestHelpers:
    def test_has_critical_rule_violation(self):
        assert ENGINE.has_critical_rule_violation([_rule("VELOCITY_RULE", "10")])
        assert not ENGINE.has_critical_rule_violation([_rule("VELOCITY_RULE", "0", False)])
        assert not ENGINE.has_critical_rule_violation([_rule("OTHER", "99")])

    def test_has_multiple_high_severity_rules(self):
        assert ENGINE.has_multiple_high_severity_rules([_rule("A", "70"), _rule("B", "95")])
        assert not ENGINE.has_multiple_high_severity_rules([_rule("A", "70"), _rule("B", "69")])

    def test_decision_metrics(self):
        rules = [_rule("GEO_LOCATION_RULE", "95"), _rule("A", "80")]
        metrics = ENGINE.decision_metrics(Decimal("88"), rules)
        assert metrics.triggered_rule_count == 2
        assert metrics.has_critical_rule_violation
        assert metrics.has_multiple_high_severity_rules
        assert metrics.confidence_level == Decimal("95")
        assert metrics.auto_approve_threshold == Decimal("30")
        assert metrics.manual_review_threshold == Decimal("70")
        assert metrics.auto_reject_threshold == Decimal("85")
        assert metrics.high_confidence_threshold == Decimal("80")

    def test_decision_metrics_follow_config(self):
        config = FraudConfig()
        config.decision.high_confidence_threshold = Decimal("90")
        metrics = FraudDecisionEngine(config).decision_metrics(Decimal("10"), [])
        assert metrics.high_confidence_threshold == Decimal("90")

    def test_error_severity_not_high(self):
        error = RuleResult(
            rule_name="A", triggered=False, score=Decimal("0"), severity=RuleSeverity.ERROR
        )
        assert ENGINE.decide(Decimal("10"), [error]).is_approved
