"""Runs the registered fraud rules for one transaction."""

from collections.abc import Sequence

import structlog

from .models import FraudDetectionResult, Transaction
from .rules import FraudRule

logger = structlog.get_logger()


class RulesEngine:
    """Evaluates a transaction against every registered rule in registration order.

    Rule failures are absorbed by the rule harness, so the result always holds
    exactly one ``RuleResult`` per registered rule.
    """

    def __init__(self, rules: Sequence[FraudRule]) -> None:
        self._rules = list(rules)
        logger.info(
            "rules_engine_initialized",
            rule_count=len(self._rules),
            rules=[rule.name for rule in self._rules],
        )

    @property
    def rules(self) -> list[FraudRule]:
        return list(self._rules)

    async def evaluate(self, transaction: Transaction) -> FraudDetectionResult:
        result = FraudDetectionResult(transaction_id=transaction.transaction_reference)

        for rule in self._rules:
            result.rule_results.append(await rule.evaluate(transaction))

        logger.info(
            "rules_evaluated",
            transaction_reference=transaction.transaction_reference,
            rule_count=len(result.rule_results),
            triggered_count=result.triggered_rule_count,
            triggered_rules=result.triggered_rule_names,
        )
        return result
