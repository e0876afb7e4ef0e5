"""Velocity-based fraud detection rule."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from ..models import RuleResult, Transaction
from .base import FraudRule

MAX_SCORE = Decimal("100")

# Hourly violations weigh more than daily ones
HOURLY_COUNT_WEIGHT = Decimal("50")
HOURLY_AMOUNT_WEIGHT = Decimal("40")
DAILY_COUNT_WEIGHT = Decimal("30")
DAILY_AMOUNT_WEIGHT = Decimal("25")


@dataclass(frozen=True)
class VelocityCheck:
    period: str
    transaction_count: int
    total_amount: Decimal
    max_transactions: int
    max_amount: Decimal

    @property
    def count_violated(self) -> bool:
        return self.transaction_count > self.max_transactions

    @property
    def amount_violated(self) -> bool:
        return self.total_amount > self.max_amount

    @property
    def violated(self) -> bool:
        return self.count_violated or self.amount_violated

    @property
    def count_ratio(self) -> Decimal:
        return Decimal(self.transaction_count) / Decimal(self.max_transactions)

    @property
    def amount_ratio(self) -> Decimal:
        return (self.total_amount / self.max_amount).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )


def velocity_recommendation(score: Decimal) -> str:
    if score >= Decimal("80"):
        return "IMMEDIATE_REVIEW_REQUIRED"
    if score >= Decimal("60"):
        return "ENHANCED_MONITORING"
    return "STANDARD_MONITORING"


class VelocityRule(FraudRule):
    """Triggers when transaction count or amount in the trailing 1h or 24h exceeds limits."""

    name = "VELOCITY_RULE"
    version = "1.0"
    description = "Detects unusual transaction velocity patterns"
    priority = 80

    async def execute_rule(self, transaction: Transaction) -> RuleResult:
        thresholds = self._config.velocity
        now = transaction.timestamp

        hourly = await self._check_window(
            "HOURLY",
            transaction.account_id,
            now - timedelta(hours=1),
            now,
            thresholds.max_transactions_per_hour,
            thresholds.max_amount_per_hour,
        )
        daily = await self._check_window(
            "DAILY",
            transaction.account_id,
            now - timedelta(days=1),
            now,
            thresholds.max_transactions_per_day,
            thresholds.max_amount_per_day,
        )

        if not (hourly.violated or daily.violated):
            return self._not_triggered()

        score = self._score(hourly, daily)
        return self._triggered(
            score=score,
            reason=self._reason(hourly, daily),
            recommendation=velocity_recommendation(score),
            evidence={
                "hourly_transaction_count": hourly.transaction_count,
                "hourly_amount": str(hourly.total_amount),
                "daily_transaction_count": daily.transaction_count,
                "daily_amount": str(daily.total_amount),
                "account_id": transaction.account_id,
            },
        )

    async def _check_window(
        self,
        period: str,
        account_id: str,
        start: datetime,
        end: datetime,
        max_transactions: int,
        max_amount: Decimal,
    ) -> VelocityCheck:
        transactions = await self._store.list_transactions_between(account_id, start, end)
        return VelocityCheck(
            period=period,
            transaction_count=len(transactions),
            total_amount=sum((t.amount for t in transactions), Decimal("0")),
            max_transactions=max_transactions,
            max_amount=max_amount,
        )

    @staticmethod
    def _score(hourly: VelocityCheck, daily: VelocityCheck) -> Decimal:
        score = Decimal("0")
        if hourly.count_violated:
            score += HOURLY_COUNT_WEIGHT * hourly.count_ratio
        if hourly.amount_violated:
            score += HOURLY_AMOUNT_WEIGHT * hourly.amount_ratio
        if daily.count_violated:
            score += DAILY_COUNT_WEIGHT * daily.count_ratio
        if daily.amount_violated:
            score += DAILY_AMOUNT_WEIGHT * daily.amount_ratio
        return min(score, MAX_SCORE)

    @staticmethod
    def _reason(hourly: VelocityCheck, daily: VelocityCheck) -> str:
        clauses = []
        for check, label in ((hourly, "Hourly"), (daily, "Daily")):
            if check.count_violated:
                clauses.append(
                    f"{label} transaction count {check.transaction_count} "
                    f"exceeds limit {check.max_transactions}"
                )
            if check.amount_violated:
                clauses.append(
                    f"{label} amount {check.total_amount:.2f} exceeds limit {check.max_amount:.2f}"
                )
        return "Velocity violation detected: " + "; ".join(clauses)
