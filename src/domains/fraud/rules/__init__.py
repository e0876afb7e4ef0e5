"""Fraud detection rules package.

``build_rules`` returns the registered rule instances in evaluation order.
"""

from ..config import FraudConfig
from ..store import FraudStore
from .base import FraudRule
from .geo import GeoAnomalyRule, estimate_distance_km, extract_country
from .harness import evaluate_rule
from .velocity import VelocityRule


def build_rules(store: FraudStore, config: FraudConfig) -> list[FraudRule]:
    """Instantiate all registered rules in evaluation order."""
    return [
        VelocityRule(store, config, enabled=config.rules.velocity_enabled),
        GeoAnomalyRule(store, config, enabled=config.rules.geo_enabled),
    ]


__all__ = [
    "FraudRule",
    "GeoAnomalyRule",
    "VelocityRule",
    "build_rules",
    "estimate_distance_km",
    "evaluate_rule",
    "extract_country",
]
