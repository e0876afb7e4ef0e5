"""Pydantic models for the fraud domain."""

from datetime import UTC, datetime
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

HIGH_SCORE_THRESHOLD = Decimal("70")
CRITICAL_SCORE_THRESHOLD = Decimal("90")


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Naive datetimes are taken to be UTC; stored history is always tz-aware."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class TransactionType(StrEnum):
    PURCHASE = "PURCHASE"
    WITHDRAWAL = "WITHDRAWAL"
    DEPOSIT = "DEPOSIT"
    TRANSFER = "TRANSFER"
    PAYMENT = "PAYMENT"
    REFUND = "REFUND"
    AUTHORIZATION = "AUTHORIZATION"
    CASHBACK = "CASHBACK"
    BILL_PAYMENT = "BILL_PAYMENT"
    SUBSCRIPTION = "SUBSCRIPTION"
    RECURRING_PAYMENT = "RECURRING_PAYMENT"
    INTERNATIONAL_TRANSFER = "INTERNATIONAL_TRANSFER"
    WIRE_TRANSFER = "WIRE_TRANSFER"
    CHECK_DEPOSIT = "CHECK_DEPOSIT"
    MOBILE_PAYMENT = "MOBILE_PAYMENT"
    ONLINE_PAYMENT = "ONLINE_PAYMENT"
    ATM_WITHDRAWAL = "ATM_WITHDRAWAL"
    POS_PURCHASE = "POS_PURCHASE"
    CONTACTLESS_PAYMENT = "CONTACTLESS_PAYMENT"
    CRYPTOCURRENCY_EXCHANGE = "CRYPTOCURRENCY_EXCHANGE"
    LOAN_PAYMENT = "LOAN_PAYMENT"
    INTEREST_PAYMENT = "INTEREST_PAYMENT"
    FEE = "FEE"
    CHARGEBACK = "CHARGEBACK"
    ADJUSTMENT = "ADJUSTMENT"


class TransactionStatus(StrEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"
    BLOCKED = "BLOCKED"
    UNDER_REVIEW = "UNDER_REVIEW"
    FLAGGED = "FLAGGED"
    PROCESSING = "PROCESSING"
    FAILED = "FAILED"
    ON_HOLD = "ON_HOLD"


class RiskLevel(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"
    UNKNOWN = "UNKNOWN"


class AccountStatus(StrEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
    CLOSED = "CLOSED"
    FROZEN = "FROZEN"
    BLOCKED = "BLOCKED"
    UNDER_REVIEW = "UNDER_REVIEW"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    DORMANT = "DORMANT"
    RESTRICTED = "RESTRICTED"


class CustomerStatus(StrEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
    CLOSED = "CLOSED"
    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    BLOCKED = "BLOCKED"
    UNDER_REVIEW = "UNDER_REVIEW"
    FROZEN = "FROZEN"


class RuleSeverity(StrEnum):
    INFO = "INFO"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"
    ERROR = "ERROR"


class FraudSeverity(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class FraudAlertStatus(StrEnum):
    ACTIVE = "ACTIVE"
    UNDER_INVESTIGATION = "UNDER_INVESTIGATION"
    ASSIGNED = "ASSIGNED"
    ESCALATED = "ESCALATED"
    ON_HOLD = "ON_HOLD"
    RESOLVED = "RESOLVED"
    DISMISSED = "DISMISSED"
    CLOSED = "CLOSED"

    @property
    def is_terminal(self) -> bool:
        return self in (
            FraudAlertStatus.RESOLVED,
            FraudAlertStatus.DISMISSED,
            FraudAlertStatus.CLOSED,
        )


class DecisionType(StrEnum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    REQUIRES_REVIEW = "REQUIRES_REVIEW"


def severity_for_score(score: Decimal) -> RuleSeverity:
    """Fixed severity bands for a triggered score."""
    if score >= CRITICAL_SCORE_THRESHOLD:
        return RuleSeverity.CRITICAL
    if score >= HIGH_SCORE_THRESHOLD:
        return RuleSeverity.HIGH
    if score >= Decimal("50"):
        return RuleSeverity.MEDIUM
    return RuleSeverity.LOW


class Transaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int | None = None
    transaction_reference: str
    account_id: str
    amount: Decimal
    currency: str = "USD"
    timestamp: datetime
    location: str | None = None
    transaction_type: TransactionType = TransactionType.PURCHASE
    status: TransactionStatus = TransactionStatus.PENDING
    merchant_id: str | None = None
    merchant_name: str | None = None
    device_id: str | None = None
    ip_address: str | None = None

    timestamp_as_utc = field_validator("timestamp")(as_utc)


class AccountSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    account_number: str
    customer_id: int | None = None
    risk_level: RiskLevel = RiskLevel.LOW
    status: AccountStatus = AccountStatus.ACTIVE
    flagged_for_monitoring: bool = False
    opened_at: datetime | None = None

    opened_at_as_utc = field_validator("opened_at")(as_utc)


class CustomerSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    customer_number: str
    risk_level: RiskLevel = RiskLevel.LOW
    status: CustomerStatus = CustomerStatus.ACTIVE
    customer_since: datetime | None = None
    last_login: datetime | None = None

    dates_as_utc = field_validator("customer_since", "last_login")(as_utc)


class RuleResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    rule_name: str
    rule_version: str = ""
    triggered: bool
    score: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    severity: RuleSeverity = RuleSeverity.LOW
    reason: str = ""
    evidence: dict = Field(default_factory=dict)
    recommendation: str | None = None
    execution_time_ms: float = 0.0
    evaluated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_high_severity(self) -> bool:
        return self.severity in (RuleSeverity.HIGH, RuleSeverity.CRITICAL)

    @property
    def is_critical_severity(self) -> bool:
        return self.severity == RuleSeverity.CRITICAL

    @property
    def has_high_score(self) -> bool:
        return self.score >= HIGH_SCORE_THRESHOLD

    def summary(self) -> str:
        state = "TRIGGERED" if self.triggered else "NOT_TRIGGERED"
        return f"{self.rule_name}: {state} (Score: {self.score:.2f}, Severity: {self.severity})"


class Decision(BaseModel):
    decision: DecisionType
    reason: str
    confidence_level: Decimal = Decimal("0")
    decided_at: datetime = Field(default_factory=utcnow)
    decided_by: str = "SYSTEM"
    contributing_factors: list[str] = []
    recommended_action: str
    requires_escalation: bool = False
    escalation_reason: str | None = None

    @classmethod
    def approved(cls, reason: str) -> "Decision":
        return cls(
            decision=DecisionType.APPROVED,
            reason=reason,
            confidence_level=Decimal("95"),
            recommended_action="PROCESS_TRANSACTION",
        )

    @classmethod
    def rejected(cls, reason: str, contributing_factors: list[str]) -> "Decision":
        return cls(
            decision=DecisionType.REJECTED,
            reason=reason,
            contributing_factors=contributing_factors,
            confidence_level=Decimal("90"),
            recommended_action="BLOCK_TRANSACTION",
        )

    @classmethod
    def requires_review(
        cls, reason: str, contributing_factors: list[str], escalate: bool
    ) -> "Decision":
        return cls(
            decision=DecisionType.REQUIRES_REVIEW,
            reason=reason,
            contributing_factors=contributing_factors,
            confidence_level=Decimal("60"),
            recommended_action="MANUAL_REVIEW",
            requires_escalation=escalate,
            escalation_reason=(
                "High risk factors detected requiring senior review" if escalate else None
            ),
        )

    @property
    def is_approved(self) -> bool:
        return self.decision == DecisionType.APPROVED

    @property
    def is_rejected(self) -> bool:
        return self.decision == DecisionType.REJECTED

    @property
    def needs_review(self) -> bool:
        return self.decision == DecisionType.REQUIRES_REVIEW

    @property
    def has_high_confidence(self) -> bool:
        return self.confidence_level >= Decimal("80")

    @property
    def has_low_confidence(self) -> bool:
        return self.confidence_level < Decimal("50")


class FraudDetectionResult(BaseModel):
    """Outcome of one pipeline run. Rule results keep evaluation order."""

    transaction_id: str
    processed_at: datetime = Field(default_factory=utcnow)
    rule_results: list[RuleResult] = []
    risk_score: Decimal | None = None
    confidence_score: Decimal | None = None
    decision: Decision | None = None

    @property
    def triggered_results(self) -> list[RuleResult]:
        return [r for r in self.rule_results if r.triggered]

    @property
    def triggered_rule_names(self) -> str:
        return ", ".join(r.rule_name for r in self.triggered_results)

    @property
    def triggered_rule_count(self) -> int:
        return len(self.triggered_results)

    @property
    def total_rule_score(self) -> Decimal:
        return sum((r.score for r in self.rule_results), Decimal("0"))

    @property
    def max_rule_score(self) -> Decimal:
        return max((r.score for r in self.rule_results), default=Decimal("0"))

    @property
    def is_fraudulent(self) -> bool:
        return self.decision is not None and self.decision.is_rejected

    @property
    def requires_review(self) -> bool:
        return self.decision is not None and self.decision.needs_review

    @property
    def is_approved(self) -> bool:
        return self.decision is not None and self.decision.is_approved

    @property
    def description(self) -> str:
        triggered = self.triggered_results
        if not triggered:
            return "No fraud indicators detected"
        reasons = [r.reason for r in triggered if r.reason and r.reason.strip()]
        return f"Detected {len(triggered)} fraud indicators: " + "; ".join(reasons)

    @property
    def recommended_action(self) -> str:
        if self.is_fraudulent:
            return "REJECT_TRANSACTION"
        if self.requires_review:
            return "MANUAL_REVIEW"
        if self.triggered_rule_count > 0:
            return "ENHANCED_MONITORING"
        return "APPROVE"

    @property
    def has_high_risk_score(self) -> bool:
        return self.risk_score is not None and self.risk_score >= HIGH_SCORE_THRESHOLD

    @property
    def has_critical_risk_score(self) -> bool:
        return self.risk_score is not None and self.risk_score >= CRITICAL_SCORE_THRESHOLD

    def summary(self) -> str:
        decision = self.decision.decision if self.decision else "UNKNOWN"
        score = self.risk_score if self.risk_score is not None else Decimal("0")
        return (
            f"Transaction {self.transaction_id} processed at {self.processed_at.isoformat()}: "
            f"Decision={decision}, Risk Score={score:.2f}, "
            f"Triggered Rules={self.triggered_rule_count}"
        )


class FraudAlert(BaseModel):
    id: int | None = None
    transaction_reference: str
    account_id: str
    rule_type: str
    rule_description: str
    severity: FraudSeverity
    status: FraudAlertStatus = FraudAlertStatus.ACTIVE
    risk_score: Decimal = Field(ge=0, le=100)
    confidence_score: Decimal | None = Field(default=None, ge=0, le=100)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    resolved_by: str | None = None
    resolved_at: datetime | None = None
    resolution_notes: str | None = None


class AuditLogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int | None = None
    transaction_reference: str | None = None
    alert_id: int | None = None
    action: str
    details: str = ""
    performed_by: str = "SYSTEM"
    successful: bool = True
    created_at: datetime = Field(default_factory=utcnow)


class RiskScoreBreakdown(BaseModel):
    rule_based_score: Decimal
    transaction_score: Decimal
    account_score: Decimal
    customer_score: Decimal
    total_score: Decimal
    rule_weight: Decimal
    transaction_weight: Decimal
    account_weight: Decimal
    customer_weight: Decimal
    base_score: Decimal


class DecisionMetrics(BaseModel):
    risk_score: Decimal
    confidence_level: Decimal
    triggered_rule_count: int
    has_critical_rule_violation: bool
    has_multiple_high_severity_rules: bool
    auto_approve_threshold: Decimal
    manual_review_threshold: Decimal
    auto_reject_threshold: Decimal
    high_confidence_threshold: Decimal
