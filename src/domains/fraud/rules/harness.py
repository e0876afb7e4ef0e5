"""Execution harness wrapped around every rule evaluation."""

import time
from decimal import Decimal
from typing import TYPE_CHECKING

import structlog

from ..models import RuleResult, RuleSeverity, Transaction, utcnow

if TYPE_CHECKING:
    from .base import FraudRule

logger = structlog.get_logger()


def disabled_result(rule: "FraudRule") -> RuleResult:
    return RuleResult(
        rule_name=rule.name,
        rule_version=rule.version,
        triggered=False,
        score=Decimal("0"),
        reason="Rule is disabled",
        severity=RuleSeverity.INFO,
    )


def error_result(rule: "FraudRule", error: Exception, elapsed_ms: float) -> RuleResult:
    return RuleResult(
        rule_name=rule.name,
        rule_version=rule.version,
        triggered=False,
        score=Decimal("0"),
        reason=f"Rule execution failed: {error}",
        severity=RuleSeverity.ERROR,
        execution_time_ms=elapsed_ms,
    )


async def evaluate_rule(rule: "FraudRule", transaction: Transaction) -> RuleResult:
    """Run ``rule.execute_rule`` with disabled short-circuit, timing, and error isolation.

    Never raises: any exception from the rule becomes a zero-score result with
    ERROR severity carrying the error message.
    """
    if not rule.enabled:
        logger.debug("rule_disabled", rule=rule.name)
        return disabled_result(rule)

    start = time.perf_counter()
    try:
        result = await rule.execute_rule(transaction)
    except Exception as exc:
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.exception(
            "rule_evaluation_error",
            rule=rule.name,
            transaction_reference=transaction.transaction_reference,
            elapsed_ms=elapsed_ms,
        )
        return error_result(rule, exc, elapsed_ms)

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.debug(
        "rule_evaluated",
        rule=rule.name,
        transaction_reference=transaction.transaction_reference,
        triggered=result.triggered,
        score=str(result.score),
        elapsed_ms=elapsed_ms,
    )
    return result.model_copy(
        update={
            "rule_version": rule.version,
            "execution_time_ms": elapsed_ms,
            "evaluated_at": utcnow(),
        }
    )
