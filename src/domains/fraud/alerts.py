"""Fraud alert construction and severity banding."""

from decimal import Decimal

from .models import (
    FraudAlert,
    FraudAlertStatus,
    FraudDetectionResult,
    FraudSeverity,
    Transaction,
    utcnow,
)

HIGH_RISK_ALERT_SCORE = Decimal("70")
HIGH_RISK_ALERT_STATUSES = [FraudAlertStatus.ACTIVE, FraudAlertStatus.ESCALATED]


def alert_severity(risk_score: Decimal) -> FraudSeverity:
    if risk_score >= Decimal("90"):
        return FraudSeverity.CRITICAL
    if risk_score >= Decimal("70"):
        return FraudSeverity.HIGH
    if risk_score >= Decimal("50"):
        return FraudSeverity.MEDIUM
    return FraudSeverity.LOW


def should_alert(result: FraudDetectionResult) -> bool:
    """Alerts are raised for rejected transactions and those sent to review."""
    return result.is_fraudulent or result.requires_review


def build_alert(transaction: Transaction, result: FraudDetectionResult) -> FraudAlert:
    risk_score = result.risk_score if result.risk_score is not None else Decimal("0")
    now = utcnow()
    return FraudAlert(
        transaction_reference=transaction.transaction_reference,
        account_id=transaction.account_id,
        rule_type=result.triggered_rule_names,
        rule_description=result.description,
        severity=alert_severity(risk_score),
        status=FraudAlertStatus.ACTIVE,
        risk_score=risk_score,
        confidence_score=result.confidence_score,
        created_at=now,
        updated_at=now,
    )


def resolve(alert: FraudAlert, resolved_by: str, resolution_notes: str) -> FraudAlert:
    """Return ``alert`` moved to RESOLVED with resolution metadata stamped."""
    now = utcnow()
    return alert.model_copy(
        update={
            "status": FraudAlertStatus.RESOLVED,
            "resolved_by": resolved_by,
            "resolved_at": now,
            "resolution_notes": resolution_notes,
            "updated_at": now,
        }
    )
