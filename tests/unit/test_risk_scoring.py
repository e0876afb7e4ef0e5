"""Unit tests for multi-factor risk scoring."""

from datetime import timedelta
from decimal import Decimal

import pytest

from src.domains.fraud.config import FraudConfig
from src.domains.fraud.models import (
    AccountSnapshot,
    AccountStatus,
    CustomerSnapshot,
    CustomerStatus,
    RiskLevel,
    RuleResult,
    TransactionType,
    severity_for_score,
)
from src.domains.fraud.risk_scoring import RiskScoringService
from tests.conftest import NOW, make_transaction, quiet_account, quiet_customer
from tests.fakes import InMemoryFraudStore


def _rule(score: str, triggered: bool = True, name: str = "R") -> RuleResult:
    value = Decimal(score)
    return RuleResult(
        rule_name=name, triggered=triggered, score=value, severity=severity_for_score(value)
    )


def _quiet_store() -> InMemoryFraudStore:
    return InMemoryFraudStore(accounts=[quiet_account()], customers={"acct-1": quiet_customer()})


class _FailingAccountStore(InMemoryFraudStore):
    async def get_account(self, account_id):
        raise ConnectionError("timeout")


class TestRuleBasedScore:
    def test_no_triggered_rules(self):
        assert RiskScoringService.rule_based_score([]) == 0
        assert RiskScoringService.rule_based_score([_rule("90", triggered=False)]) == 0

    def test_single_rule_is_its_score(self):
        assert RiskScoringService.rule_based_score([_rule("55")]) == Decimal("55")

    def test_two_rules_add_ten_percent_of_max(self):
        score = RiskScoringService.rule_based_score([_rule("85"), _rule("60")])
        assert score == Decimal("93.5")

    def test_bonus_decays(self):
        # 80 + 8 + 4
        score = RiskScoringService.rule_based_score([_rule("80"), _rule("50"), _rule("40")])
        assert score == Decimal("92")

    def test_clamped_at_100(self):
        results = [_rule("100") for _ in range(6)]
        assert RiskScoringService.rule_based_score(results) == Decimal("100")

    def test_untriggered_scores_ignored(self):
        score = RiskScoringService.rule_based_score([_rule("40"), _rule("99", triggered=False)])
        assert score == Decimal("40")


class TestTransactionScore:
    def test_ordinary_purchase(self):
        assert RiskScoringService.transaction_score(make_transaction()) == 0

    def test_large_amount_scales(self):
        txn = make_transaction(amount=Decimal("25000"))
        assert RiskScoringService.transaction_score(txn) == Decimal("15")

    def test_large_amount_saturates(self):
        txn = make_transaction(amount=Decimal("100000"))
        assert RiskScoringService.transaction_score(txn) == Decimal("30")

    def test_amount_at_threshold_not_large(self):
        txn = make_transaction(amount=Decimal("10000"))
        assert RiskScoringService.transaction_score(txn) == 0

    def test_night_crypto_foreign(self):
        txn = make_transaction(
            timestamp=NOW.replace(hour=2),
            transaction_type=TransactionType.CRYPTOCURRENCY_EXCHANGE,
            currency="EUR",
        )
        assert RiskScoringService.transaction_score(txn) == Decimal("50")

    @pytest.mark.parametrize(
        "hour,expected",
        [(23, Decimal("15")), (5, Decimal("15")), (6, Decimal("0")), (22, Decimal("0"))],
    )
    def test_night_window_edges(self, hour, expected):
        txn = make_transaction(timestamp=NOW.replace(hour=hour))
        assert RiskScoringService.transaction_score(txn) == expected

    @pytest.mark.parametrize(
        "txn_type,expected",
        [
            (TransactionType.INTERNATIONAL_TRANSFER, Decimal("20")),
            (TransactionType.WIRE_TRANSFER, Decimal("20")),
            (TransactionType.ONLINE_PAYMENT, Decimal("10")),
            (TransactionType.MOBILE_PAYMENT, Decimal("10")),
            (TransactionType.ATM_WITHDRAWAL, Decimal("5")),
            (TransactionType.DEPOSIT, Decimal("0")),
        ],
    )
    def test_type_points(self, txn_type, expected):
        txn = make_transaction(transaction_type=txn_type)
        assert RiskScoringService.transaction_score(txn) == expected


class TestAccountScore:
    @pytest.mark.asyncio
    async def test_unknown_account(self):
        service = RiskScoringService(InMemoryFraudStore())
        assert await service.account_score(make_transaction()) == Decimal("50")

    @pytest.mark.asyncio
    async def test_quiet_account(self):
        service = RiskScoringService(_quiet_store())
        assert await service.account_score(make_transaction()) == 0

    @pytest.mark.asyncio
    async def test_risky_account_clamped(self):
        account = AccountSnapshot(
            account_number="acct-1",
            risk_level=RiskLevel.HIGH,
            status=AccountStatus.SUSPENDED,
            flagged_for_monitoring=True,
            opened_at=NOW - timedelta(days=10),
        )
        service = RiskScoringService(InMemoryFraudStore(accounts=[account]))
        assert await service.account_score(make_transaction()) == Decimal("100")

    @pytest.mark.asyncio
    async def test_new_restricted_medium_account(self):
        account = AccountSnapshot(
            account_number="acct-1",
            risk_level=RiskLevel.MEDIUM,
            status=AccountStatus.RESTRICTED,
            opened_at=NOW - timedelta(days=29),
        )
        service = RiskScoringService(InMemoryFraudStore(accounts=[account]))
        # 15 + 25 + 15
        assert await service.account_score(make_transaction()) == Decimal("55")


class TestCustomerScore:
    @pytest.mark.asyncio
    async def test_unknown_customer(self):
        service = RiskScoringService(InMemoryFraudStore())
        assert await service.customer_score(make_transaction()) == Decimal("25")

    @pytest.mark.asyncio
    async def test_quiet_customer(self):
        service = RiskScoringService(_quiet_store())
        assert await service.customer_score(make_transaction()) == 0

    @pytest.mark.asyncio
    async def test_new_inactive_frozen_customer(self):
        customer = CustomerSnapshot(
            customer_number="cust-1",
            risk_level=RiskLevel.MEDIUM,
            status=CustomerStatus.FROZEN,
            customer_since=NOW - timedelta(days=30),
            last_login=NOW - timedelta(days=200),
        )
        service = RiskScoringService(InMemoryFraudStore(customers={"acct-1": customer}))
        # 10 + 20 + 10 + 15
        assert await service.customer_score(make_transaction()) == Decimal("55")

    @pytest.mark.asyncio
    async def test_low_risk_customer(self):
        customer = CustomerSnapshot(customer_number="cust-1", risk_level=RiskLevel.LOW)
        service = RiskScoringService(InMemoryFraudStore(customers={"acct-1": customer}))
        assert await service.customer_score(make_transaction()) == Decimal("3")


class TestCalculateRiskScore:
    @pytest.mark.asyncio
    async def test_zero_signal_is_base_score(self):
        service = RiskScoringService(_quiet_store())
        score = await service.calculate_risk_score(make_transaction(), [])
        assert score == Decimal("20.00")

    @pytest.mark.asyncio
    async def test_unknown_account_and_customer_defaults(self):
        service = RiskScoringService(InMemoryFraudStore())
        score = await service.calculate_risk_score(make_transaction(), [])
        # 20 + 50 * 0.1 + 25 * 0.1
        assert score == Decimal("27.50")

    @pytest.mark.asyncio
    async def test_rule_weight_applied(self):
        service = RiskScoringService(_quiet_store())
        score = await service.calculate_risk_score(make_transaction(), [_rule("95")])
        assert score == Decimal("77.00")

    @pytest.mark.asyncio
    async def test_sub_score_failure_falls_back(self):
        store = _FailingAccountStore(customers={"acct-1": quiet_customer()})
        service = RiskScoringService(store)

        breakdown = await service.breakdown(make_transaction(), [])

        assert breakdown.account_score == Decimal("25")
        assert breakdown.total_score == Decimal("22.50")

    @pytest.mark.asyncio
    async def test_total_failure_returns_base_score(self, monkeypatch):
        service = RiskScoringService(_quiet_store())

        def boom(*args):
            raise ArithmeticError("overflow")

        monkeypatch.setattr(service, "weighted_total", boom)
        score = await service.calculate_risk_score(make_transaction(), [_rule("90")])
        assert score == Decimal("20.00")

    @pytest.mark.asyncio
    async def test_breakdown_carries_weights(self):
        service = RiskScoringService(_quiet_store())
        breakdown = await service.breakdown(make_transaction(), [_rule("50")])
        assert breakdown.rule_based_score == Decimal("50")
        assert breakdown.rule_weight == Decimal("0.6")
        assert breakdown.transaction_weight == Decimal("0.2")
        assert breakdown.account_weight == Decimal("0.1")
        assert breakdown.customer_weight == Decimal("0.1")
        assert breakdown.base_score == Decimal("20")
        assert breakdown.total_score == Decimal("50.00")

    @pytest.mark.asyncio
    async def test_custom_weights(self):
        config = FraudConfig()
        config.scoring.base_score = Decimal("0")
        config.scoring.rule_weight = Decimal("1")
        service = RiskScoringService(_quiet_store(), config)
        score = await service.calculate_risk_score(make_transaction(), [_rule("42")])
        assert score == Decimal("42.00")


class TestWeightedTotal:
    def test_clamped_to_max(self):
        service = RiskScoringService(InMemoryFraudStore())
        hundred = Decimal("100")
        assert service.weighted_total(hundred, hundred, hundred, hundred) == Decimal("100.00")

    def test_rounds_half_up(self):
        service = RiskScoringService(InMemoryFraudStore())
        # 20 + 0.0125 * 0.6 = 20.0075
        total = service.weighted_total(Decimal("0.0125"), Decimal("0"), Decimal("0"), Decimal("0"))
        assert total == Decimal("20.01")
        assert total.as_tuple().exponent == -2

    def test_total_within_bounds(self):
        service = RiskScoringService(InMemoryFraudStore())
        for value in ("0", "17.3", "64.99", "100"):
            d = Decimal(value)
            total = service.weighted_total(d, d, d, d)
            assert Decimal("0") <= total <= Decimal("100")
