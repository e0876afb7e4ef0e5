"""Multi-factor risk scoring: rule evidence plus transaction, account, and customer signals."""

from collections.abc import Sequence
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

import structlog

from .config import FraudConfig, default_config
from .models import (
    AccountStatus,
    CustomerStatus,
    RiskLevel,
    RiskScoreBreakdown,
    RuleResult,
    Transaction,
    TransactionType,
)
from .store import FraudStore

logger = structlog.get_logger()

ZERO = Decimal("0")
SUB_SCORE_CAP = Decimal("100")
FALLBACK_SUB_SCORE = Decimal("25")
UNKNOWN_ACCOUNT_SCORE = Decimal("50")
UNKNOWN_CUSTOMER_SCORE = Decimal("25")

MAX_BONUS_RULES = 4
FIRST_BONUS_RATE = Decimal("0.1")
BONUS_DECAY = Decimal("0.5")

LARGE_AMOUNT_THRESHOLD = Decimal("10000")
LARGE_AMOUNT_SATURATION = Decimal("50000")
LARGE_AMOUNT_MAX_POINTS = Decimal("30")
NIGHT_HOURS_POINTS = Decimal("15")
FOREIGN_CURRENCY_POINTS = Decimal("10")
HOME_CURRENCY = "USD"

TRANSACTION_TYPE_POINTS: dict[TransactionType, Decimal] = {
    TransactionType.CRYPTOCURRENCY_EXCHANGE: Decimal("25"),
    TransactionType.INTERNATIONAL_TRANSFER: Decimal("20"),
    TransactionType.WIRE_TRANSFER: Decimal("20"),
    TransactionType.ONLINE_PAYMENT: Decimal("10"),
    TransactionType.MOBILE_PAYMENT: Decimal("10"),
    TransactionType.ATM_WITHDRAWAL: Decimal("5"),
}

ACCOUNT_RISK_POINTS: dict[RiskLevel, Decimal] = {
    RiskLevel.VERY_HIGH: Decimal("40"),
    RiskLevel.HIGH: Decimal("30"),
    RiskLevel.MEDIUM: Decimal("15"),
    RiskLevel.LOW: Decimal("5"),
}
ACCOUNT_STATUS_POINTS: dict[AccountStatus, Decimal] = {
    AccountStatus.SUSPENDED: Decimal("50"),
    AccountStatus.RESTRICTED: Decimal("25"),
}
FLAGGED_ACCOUNT_POINTS = Decimal("20")
NEW_ACCOUNT_DAYS = 30
NEW_ACCOUNT_POINTS = Decimal("15")

CUSTOMER_RISK_POINTS: dict[RiskLevel, Decimal] = {
    RiskLevel.VERY_HIGH: Decimal("35"),
    RiskLevel.HIGH: Decimal("25"),
    RiskLevel.MEDIUM: Decimal("10"),
    RiskLevel.LOW: Decimal("3"),
}
CUSTOMER_STATUS_POINTS: dict[CustomerStatus, Decimal] = {
    CustomerStatus.SUSPENDED: Decimal("40"),
    CustomerStatus.BLOCKED: Decimal("35"),
    CustomerStatus.FROZEN: Decimal("20"),
}
NEW_CUSTOMER_DAYS = 90
NEW_CUSTOMER_POINTS = Decimal("10")
INACTIVE_CUSTOMER_DAYS = 180
INACTIVE_CUSTOMER_POINTS = Decimal("15")


def _clamp(value: Decimal, upper: Decimal = SUB_SCORE_CAP) -> Decimal:
    return max(ZERO, min(value, upper))


def _days_between(earlier: datetime, later: datetime) -> int:
    return (later - earlier).days


class RiskScoringService:
    """Combines four sub-scores into one weighted total.

    ``total = base + rule*w_rule + txn*w_txn + account*w_account + customer*w_customer``,
    clamped to ``[0, max_score]`` and rounded half-up to two decimals. Account and
    customer age checks are measured against the transaction timestamp.
    """

    def __init__(self, store: FraudStore, config: FraudConfig | None = None) -> None:
        self._store = store
        self._config = config or default_config

    async def calculate_risk_score(
        self, transaction: Transaction, rule_results: Sequence[RuleResult]
    ) -> Decimal:
        try:
            breakdown = await self.breakdown(transaction, rule_results)
        except Exception:
            logger.exception(
                "risk_score_calculation_failed",
                transaction_reference=transaction.transaction_reference,
            )
            return self._round(self._config.scoring.base_score)

        logger.info(
            "risk_score_calculated",
            transaction_reference=transaction.transaction_reference,
            rule_score=str(breakdown.rule_based_score),
            transaction_score=str(breakdown.transaction_score),
            account_score=str(breakdown.account_score),
            customer_score=str(breakdown.customer_score),
            total_score=str(breakdown.total_score),
        )
        return breakdown.total_score

    async def breakdown(
        self, transaction: Transaction, rule_results: Sequence[RuleResult]
    ) -> RiskScoreBreakdown:
        scoring = self._config.scoring
        rule_score = self._guarded("rule", transaction, self.rule_based_score, rule_results)
        transaction_score = self._guarded(
            "transaction", transaction, self.transaction_score, transaction
        )
        account_score = await self._guarded_async(
            "account", transaction, self.account_score, transaction
        )
        customer_score = await self._guarded_async(
            "customer", transaction, self.customer_score, transaction
        )
        total = self.weighted_total(rule_score, transaction_score, account_score, customer_score)

        return RiskScoreBreakdown(
            rule_based_score=rule_score,
            transaction_score=transaction_score,
            account_score=account_score,
            customer_score=customer_score,
            total_score=total,
            rule_weight=scoring.rule_weight,
            transaction_weight=scoring.transaction_weight,
            account_weight=scoring.account_weight,
            customer_weight=scoring.customer_weight,
            base_score=scoring.base_score,
        )

    @staticmethod
    def rule_based_score(rule_results: Sequence[RuleResult]) -> Decimal:
        """Max triggered score plus a diminishing bonus per extra triggered rule."""
        triggered = [r for r in rule_results if r.triggered]
        if not triggered:
            return ZERO

        max_score = max(r.score for r in triggered)
        bonus = ZERO
        for i in range(1, min(len(triggered), MAX_BONUS_RULES + 1)):
            bonus += max_score * FIRST_BONUS_RATE * BONUS_DECAY ** (i - 1)
        return _clamp(max_score + bonus)

    @staticmethod
    def transaction_score(transaction: Transaction) -> Decimal:
        score = ZERO

        if transaction.amount > LARGE_AMOUNT_THRESHOLD:
            factor = min(transaction.amount / LARGE_AMOUNT_SATURATION, Decimal("1"))
            score += LARGE_AMOUNT_MAX_POINTS * factor

        hour = transaction.timestamp.hour
        if hour >= 23 or hour <= 5:
            score += NIGHT_HOURS_POINTS

        score += TRANSACTION_TYPE_POINTS.get(transaction.transaction_type, ZERO)

        if transaction.currency != HOME_CURRENCY:
            score += FOREIGN_CURRENCY_POINTS

        return _clamp(score)

    async def account_score(self, transaction: Transaction) -> Decimal:
        account = await self._store.get_account(transaction.account_id)
        if account is None:
            return UNKNOWN_ACCOUNT_SCORE

        score = ACCOUNT_RISK_POINTS.get(account.risk_level, ZERO)
        score += ACCOUNT_STATUS_POINTS.get(account.status, ZERO)
        if account.flagged_for_monitoring:
            score += FLAGGED_ACCOUNT_POINTS
        if (
            account.opened_at is not None
            and _days_between(account.opened_at, transaction.timestamp) < NEW_ACCOUNT_DAYS
        ):
            score += NEW_ACCOUNT_POINTS
        return _clamp(score)

    async def customer_score(self, transaction: Transaction) -> Decimal:
        customer = await self._store.get_customer_for_account(transaction.account_id)
        if customer is None:
            return UNKNOWN_CUSTOMER_SCORE

        score = CUSTOMER_RISK_POINTS.get(customer.risk_level, ZERO)
        score += CUSTOMER_STATUS_POINTS.get(customer.status, ZERO)
        if (
            customer.customer_since is not None
            and _days_between(customer.customer_since, transaction.timestamp) < NEW_CUSTOMER_DAYS
        ):
            score += NEW_CUSTOMER_POINTS
        if (
            customer.last_login is not None
            and _days_between(customer.last_login, transaction.timestamp) > INACTIVE_CUSTOMER_DAYS
        ):
            score += INACTIVE_CUSTOMER_POINTS
        return _clamp(score)

    def weighted_total(
        self,
        rule_score: Decimal,
        transaction_score: Decimal,
        account_score: Decimal,
        customer_score: Decimal,
    ) -> Decimal:
        scoring = self._config.scoring
        weighted = (
            rule_score * scoring.rule_weight
            + transaction_score * scoring.transaction_weight
            + account_score * scoring.account_weight
            + customer_score * scoring.customer_weight
        )
        return self._round(_clamp(weighted + scoring.base_score, scoring.max_score))

    @staticmethod
    def _round(value: Decimal) -> Decimal:
        return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    @staticmethod
    def _guarded(component, transaction, func, *args) -> Decimal:
        try:
            return func(*args)
        except Exception:
            logger.exception(
                "sub_score_failed",
                component=component,
                transaction_reference=transaction.transaction_reference,
            )
            return FALLBACK_SUB_SCORE

    @staticmethod
    async def _guarded_async(component, transaction, func, *args) -> Decimal:
        try:
            return await func(*args)
        except Exception:
            logger.exception(
                "sub_score_failed",
                component=component,
                transaction_reference=transaction.transaction_reference,
            )
            return FALLBACK_SUB_SCORE
