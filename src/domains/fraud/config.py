"""Fraud detection configuration with sensible defaults."""

import os
from dataclasses import dataclass, field
from decimal import Decimal


@dataclass
class VelocityThresholds:
    max_transactions_per_hour: int = 10
    max_transactions_per_day: int = 50
    max_amount_per_hour: Decimal = Decimal("10000")
    max_amount_per_day: Decimal = Decimal("50000")


@dataclass
class GeoThresholds:
    min_time_between_locations_minutes: int = 60
    max_travel_speed_kmh: float = 800.0
    multi_country_window_hours: int = 6
    multi_country_max: int = 3
    high_risk_countries: tuple[str, ...] = ()


@dataclass
class ScoringWeights:
    base_score: Decimal = Decimal("20")
    max_score: Decimal = Decimal("100")
    rule_weight: Decimal = Decimal("0.6")
    transaction_weight: Decimal = Decimal("0.2")
    account_weight: Decimal = Decimal("0.1")
    customer_weight: Decimal = Decimal("0.1")


@dataclass
class DecisionThresholds:
    auto_approve_threshold: Decimal = Decimal("30")
    manual_review_threshold: Decimal = Decimal("70")
    auto_reject_threshold: Decimal = Decimal("85")
    high_confidence_threshold: Decimal = Decimal("80")
    critical_rules: tuple[str, ...] = ("VELOCITY_RULE", "GEO_LOCATION_RULE")


@dataclass
class RuleSettings:
    velocity_enabled: bool = True
    geo_enabled: bool = True


def _parse_list(value: str) -> tuple[str, ...]:
    return tuple(item.strip().upper() for item in value.split(",") if item.strip())


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class FraudConfig:
    velocity: VelocityThresholds = field(default_factory=VelocityThresholds)
    geo: GeoThresholds = field(default_factory=GeoThresholds)
    scoring: ScoringWeights = field(default_factory=ScoringWeights)
    decision: DecisionThresholds = field(default_factory=DecisionThresholds)
    rules: RuleSettings = field(default_factory=RuleSettings)

    @classmethod
    def from_env(cls) -> "FraudConfig":
        """Load config with env var overrides. Env vars use FRAUD_ prefix."""
        config = cls()

        # Velocity overrides
        if v := os.getenv("FRAUD_MAX_TRANSACTIONS_PER_HOUR"):
            config.velocity.max_transactions_per_hour = int(v)
        if v := os.getenv("FRAUD_MAX_TRANSACTIONS_PER_DAY"):
            config.velocity.max_transactions_per_day = int(v)
        if v := os.getenv("FRAUD_MAX_AMOUNT_PER_HOUR"):
            config.velocity.max_amount_per_hour = Decimal(v)
        if v := os.getenv("FRAUD_MAX_AMOUNT_PER_DAY"):
            config.velocity.max_amount_per_day = Decimal(v)

        # Geo overrides
        if v := os.getenv("FRAUD_MIN_TIME_BETWEEN_LOCATIONS_MINUTES"):
            config.geo.min_time_between_locations_minutes = int(v)
        if v := os.getenv("FRAUD_HIGH_RISK_COUNTRIES"):
            config.geo.high_risk_countries = _parse_list(v)

        # Scoring overrides
        if v := os.getenv("FRAUD_BASE_SCORE"):
            config.scoring.base_score = Decimal(v)
        if v := os.getenv("FRAUD_MAX_SCORE"):
            config.scoring.max_score = Decimal(v)
        if v := os.getenv("FRAUD_RULE_WEIGHT"):
            config.scoring.rule_weight = Decimal(v)
        if v := os.getenv("FRAUD_TRANSACTION_WEIGHT"):
            config.scoring.transaction_weight = Decimal(v)
        if v := os.getenv("FRAUD_ACCOUNT_WEIGHT"):
            config.scoring.account_weight = Decimal(v)
        if v := os.getenv("FRAUD_CUSTOMER_WEIGHT"):
            config.scoring.customer_weight = Decimal(v)

        # Decision overrides
        if v := os.getenv("FRAUD_AUTO_APPROVE_THRESHOLD"):
            config.decision.auto_approve_threshold = Decimal(v)
        if v := os.getenv("FRAUD_MANUAL_REVIEW_THRESHOLD"):
            config.decision.manual_review_threshold = Decimal(v)
        if v := os.getenv("FRAUD_AUTO_REJECT_THRESHOLD"):
            config.decision.auto_reject_threshold = Decimal(v)
        if v := os.getenv("FRAUD_CRITICAL_RULES"):
            config.decision.critical_rules = _parse_list(v)

        # Rule toggles
        if v := os.getenv("FRAUD_VELOCITY_RULE_ENABLED"):
            config.rules.velocity_enabled = _parse_bool(v)
        if v := os.getenv("FRAUD_GEO_RULE_ENABLED"):
            config.rules.geo_enabled = _parse_bool(v)

        return config


# Module-level default instance
default_config = FraudConfig()
