"""Geography-based fraud detection rule.

Locations are free-text strings of the form "City, State, Country". Distance
is a coarse tiered estimate from those segments, not a geodesic distance.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal

from ..models import RuleResult, Transaction
from .base import FraudRule

MAX_SCORE = Decimal("100")

SAME_LOCATION_KM = 0.0
DIFFERENT_CITY_KM = 100.0
DIFFERENT_REGION_KM = 500.0
DIFFERENT_COUNTRY_KM = 2000.0
UNPARSEABLE_LOCATION_KM = 1000.0

IMPOSSIBLE_TRAVEL_SCORE = Decimal("80")
RAPID_TRAVEL_BONUS = Decimal("15")
RAPID_TRAVEL_MINUTES = 30
HIGH_RISK_COUNTRY_SCORE = Decimal("60")
MULTI_COUNTRY_SCORE = Decimal("40")
EXTRA_COUNTRY_SCORE = Decimal("10")


def extract_country(location: str | None) -> str:
    """Uppercased country token: the last comma-separated segment."""
    if location is None or not location.strip():
        return "UNKNOWN"
    parts = location.split(",")
    if len(parts) >= 3:
        return parts[-1].strip().upper()
    if len(parts) == 2:
        return parts[1].strip().upper()
    return parts[0].strip().upper()


def estimate_distance_km(location1: str | None, location2: str | None) -> float:
    """Tiered distance heuristic between two location strings."""
    if location1 is None or location2 is None:
        return SAME_LOCATION_KM
    if location1.strip().lower() == location2.strip().lower():
        return SAME_LOCATION_KM

    parts1 = [p.strip().lower() for p in location1.split(",")]
    parts2 = [p.strip().lower() for p in location2.split(",")]
    if len(parts1) < 2 or len(parts2) < 2:
        return UNPARSEABLE_LOCATION_KM

    if parts1[-1] != parts2[-1]:
        return DIFFERENT_COUNTRY_KM
    if parts1[-2] != parts2[-2]:
        return DIFFERENT_REGION_KM
    return DIFFERENT_CITY_KM


@dataclass(frozen=True)
class ImpossibleTravelCheck:
    impossible_travel: bool = False
    distance_km: float = 0.0
    time_difference_minutes: int = 0
    last_location: str | None = None
    last_transaction_time: datetime | None = None


@dataclass(frozen=True)
class MultiCountryCheck:
    country_count: int = 0
    countries: list[str] = field(default_factory=list)
    suspicious: bool = False


def geo_recommendation(score: Decimal, is_high_risk_country: bool) -> str:
    if score >= Decimal("80"):
        return "IMMEDIATE_BLOCK_REQUIRED"
    if is_high_risk_country or score >= Decimal("60"):
        return "ENHANCED_AUTHENTICATION_REQUIRED"
    return "ADDITIONAL_VERIFICATION"


class GeoAnomalyRule(FraudRule):
    """Triggers on impossible travel, a high-risk origin country, or a multi-country burst."""

    name = "GEO_LOCATION_RULE"
    version = "1.0"
    description = "Detects impossible travel and suspicious geographical patterns"
    priority = 90

    async def execute_rule(self, transaction: Transaction) -> RuleResult:
        current_country = extract_country(transaction.location)

        travel = await self._check_impossible_travel(transaction)
        is_high_risk_country = self._is_high_risk_country(current_country)
        multi_country = await self._check_multiple_countries(transaction)

        if not (travel.impossible_travel or is_high_risk_country or multi_country.suspicious):
            return self._not_triggered()

        score = self._score(travel, is_high_risk_country, multi_country)
        return self._triggered(
            score=score,
            reason=self._reason(travel, is_high_risk_country, multi_country, current_country),
            recommendation=geo_recommendation(score, is_high_risk_country),
            evidence={
                "current_location": transaction.location,
                "current_country": current_country,
                "impossible_travel": travel.impossible_travel,
                "distance_km": travel.distance_km,
                "time_difference_minutes": travel.time_difference_minutes,
                "is_high_risk_country": is_high_risk_country,
                "country_count": multi_country.country_count,
                "account_id": transaction.account_id,
            },
        )

    async def _check_impossible_travel(self, transaction: Transaction) -> ImpossibleTravelCheck:
        last = await self._store.find_last_transaction_before(
            transaction.account_id, transaction.timestamp
        )
        if last is None:
            return ImpossibleTravelCheck()

        geo = self._config.geo
        distance = estimate_distance_km(last.location, transaction.location)
        elapsed_minutes = int((transaction.timestamp - last.timestamp).total_seconds() // 60)
        max_possible_distance = (elapsed_minutes / 60.0) * geo.max_travel_speed_kmh
        impossible = (
            distance > max_possible_distance
            and elapsed_minutes < geo.min_time_between_locations_minutes
        )

        return ImpossibleTravelCheck(
            impossible_travel=impossible,
            distance_km=distance,
            time_difference_minutes=elapsed_minutes,
            last_location=last.location,
            last_transaction_time=last.timestamp,
        )

    def _is_high_risk_country(self, country: str) -> bool:
        high_risk = {c.upper() for c in self._config.geo.high_risk_countries}
        return country.upper() in high_risk

    async def _check_multiple_countries(self, transaction: Transaction) -> MultiCountryCheck:
        geo = self._config.geo
        start = transaction.timestamp - timedelta(hours=geo.multi_country_window_hours)
        locations = await self._store.list_locations_between(
            transaction.account_id, start, transaction.timestamp
        )

        countries: list[str] = []
        for location in locations:
            country = extract_country(location)
            if country not in countries:
                countries.append(country)

        return MultiCountryCheck(
            country_count=len(countries),
            countries=countries,
            suspicious=len(countries) > geo.multi_country_max,
        )

    def _score(
        self,
        travel: ImpossibleTravelCheck,
        is_high_risk_country: bool,
        multi_country: MultiCountryCheck,
    ) -> Decimal:
        score = Decimal("0")
        if travel.impossible_travel:
            score += IMPOSSIBLE_TRAVEL_SCORE
            if travel.time_difference_minutes < RAPID_TRAVEL_MINUTES:
                score += RAPID_TRAVEL_BONUS
        if is_high_risk_country:
            score += HIGH_RISK_COUNTRY_SCORE
        if multi_country.suspicious:
            extra = multi_country.country_count - self._config.geo.multi_country_max
            score += MULTI_COUNTRY_SCORE + EXTRA_COUNTRY_SCORE * extra
        return min(score, MAX_SCORE)

    @staticmethod
    def _reason(
        travel: ImpossibleTravelCheck,
        is_high_risk_country: bool,
        multi_country: MultiCountryCheck,
        current_country: str,
    ) -> str:
        clauses = []
        if travel.impossible_travel:
            clauses.append(
                f"impossible travel: {travel.distance_km:.2f} km "
                f"in {travel.time_difference_minutes} minutes"
            )
        if is_high_risk_country:
            clauses.append(f"transaction from high-risk country: {current_country}")
        if multi_country.suspicious:
            clauses.append(
                f"multiple countries ({multi_country.country_count}) accessed in short period"
            )
        return "Geographical anomaly detected: " + "; ".join(clauses)
