"""Abstract contract for fraud detection rules."""

from abc import ABC, abstractmethod
from decimal import Decimal

from ..config import FraudConfig
from ..models import RuleResult, RuleSeverity, Transaction, severity_for_score
from ..store import FraudStore
from .harness import evaluate_rule


class FraudRule(ABC):
    """Base class for all fraud rules.

    Rules receive their store and config at construction and implement
    ``execute_rule``. Callers use ``evaluate``, which runs the rule through the
    shared harness so a failing rule never aborts the pipeline.
    """

    name: str
    version: str = "1.0"
    description: str = ""
    priority: int = 0

    def __init__(self, store: FraudStore, config: FraudConfig, enabled: bool = True) -> None:
        self._store = store
        self._config = config
        self.enabled = enabled

    async def evaluate(self, transaction: Transaction) -> RuleResult:
        return await evaluate_rule(self, transaction)

    @abstractmethod
    async def execute_rule(self, transaction: Transaction) -> RuleResult:
        """Rule-specific evaluation logic."""
        ...

    def _not_triggered(self) -> RuleResult:
        """Convenience: return a non-triggered result for this rule."""
        return RuleResult(
            rule_name=self.name,
            triggered=False,
            score=Decimal("0"),
            reason="Rule conditions not met",
            severity=RuleSeverity.LOW,
        )

    def _triggered(
        self,
        score: Decimal,
        reason: str,
        recommendation: str,
        evidence: dict | None = None,
    ) -> RuleResult:
        """Convenience: return a triggered result for this rule."""
        return RuleResult(
            rule_name=self.name,
            triggered=True,
            score=score,
            reason=reason,
            severity=severity_for_score(score),
            recommendation=recommendation,
            evidence=evidence or {},
        )
