"""Fraud detection pipeline: persist -> rules -> score -> decide -> alert -> audit."""

from collections.abc import Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .alerts import (
    HIGH_RISK_ALERT_SCORE,
    HIGH_RISK_ALERT_STATUSES,
    build_alert,
    resolve,
    should_alert,
)
from .config import FraudConfig, default_config
from .decision_engine import FraudDecisionEngine
from .exceptions import AlertNotFoundError, FraudDetectionError
from .models import (
    AuditLogEntry,
    DecisionType,
    FraudAlert,
    FraudDetectionResult,
    Transaction,
    TransactionStatus,
)
from .risk_scoring import RiskScoringService
from .rules import FraudRule, build_rules
from .rules_engine import RulesEngine
from .store import FraudStore, SQLAlchemyFraudStore

logger = structlog.get_logger()

# Approved and review decisions both leave the transaction pending further action.
_DECISION_STATUS = {
    DecisionType.APPROVED: TransactionStatus.PENDING,
    DecisionType.REQUIRES_REVIEW: TransactionStatus.PENDING,
    DecisionType.REJECTED: TransactionStatus.FAILED,
}


class FraudDetectionService:
    """Orchestrates the full fraud decision pipeline for one transaction."""

    def __init__(
        self,
        store: FraudStore,
        config: FraudConfig | None = None,
        rules: Sequence[FraudRule] | None = None,
    ) -> None:
        self._store = store
        self._config = config or default_config
        self._rules_engine = RulesEngine(
            rules if rules is not None else build_rules(store, self._config)
        )
        self._risk_scoring = RiskScoringService(store, self._config)
        self._decision_engine = FraudDecisionEngine(self._config)

    @classmethod
    def for_session(
        cls,
        session: AsyncSession,
        config: FraudConfig | None = None,
        audit_session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> "FraudDetectionService":
        """Service over ``session``. Error audit entries go through ``audit_session_factory``."""
        return cls(SQLAlchemyFraudStore(session, audit_session_factory), config)

    async def process_transaction(self, transaction: Transaction) -> FraudDetectionResult:
        """Run the full pipeline. Raises ``FraudDetectionError`` on any unrecovered failure.

        Writes already made before a failure (such as the initial persist) are
        left in place.
        """
        reference = transaction.transaction_reference
        logger.info("transaction_processing_started", transaction_reference=reference)

        try:
            saved = await self._store.save_transaction(transaction)
            await self._audit(reference, "FRAUD_DETECTION_STARTED", "Starting fraud detection process")

            result = await self._rules_engine.evaluate(saved)
            result.risk_score = await self._risk_scoring.calculate_risk_score(
                saved, result.rule_results
            )

            decision = self._decision_engine.make_decision(result)
            result.decision = decision
            result.confidence_score = decision.confidence_level

            if should_alert(result):
                await self._create_alert(saved, result)

            status = _DECISION_STATUS[decision.decision]
            await self._store.save_transaction(saved.model_copy(update={"status": status}))
            logger.debug(
                "transaction_status_updated", transaction_reference=reference, status=status.value
            )

            await self._audit(
                reference,
                "FRAUD_DETECTION_COMPLETED",
                f"Fraud detection completed. Decision: {decision.decision.value}, "
                f"Risk Score: {result.risk_score}",
            )
        except Exception as exc:
            logger.exception("transaction_processing_failed", transaction_reference=reference)
            await self._audit_failure(reference, exc)
            raise FraudDetectionError(
                "Failed to process transaction for fraud detection", cause=exc
            ) from exc

        logger.info(
            "transaction_processed",
            transaction_reference=reference,
            decision=decision.decision.value,
            risk_score=str(result.risk_score),
            confidence=str(result.confidence_score),
            triggered_count=result.triggered_rule_count,
        )
        return result

    async def get_active_alerts_for_account(self, account_id: str) -> list[FraudAlert]:
        """Alerts for the account that are not yet in a terminal state, newest first."""
        alerts = await self._store.list_alerts_for_account(account_id)
        return [alert for alert in alerts if not alert.status.is_terminal]

    async def get_high_risk_alerts(self) -> list[FraudAlert]:
        return await self._store.list_high_risk_alerts(
            HIGH_RISK_ALERT_SCORE, HIGH_RISK_ALERT_STATUSES
        )

    async def resolve_alert(
        self, alert_id: int, resolved_by: str, resolution_notes: str
    ) -> FraudAlert:
        """Move an alert to RESOLVED.

        Resolving an alert that is already RESOLVED, DISMISSED or CLOSED is a
        no-op and returns it unchanged.
        """
        alert = await self._store.get_alert(alert_id)
        if alert is None:
            raise AlertNotFoundError(alert_id)

        if alert.status.is_terminal:
            logger.info(
                "fraud_alert_already_closed",
                alert_id=alert_id,
                status=alert.status.value,
                requested_by=resolved_by,
            )
            return alert

        resolved = await self._store.save_alert(resolve(alert, resolved_by, resolution_notes))
        await self._audit(
            alert.transaction_reference,
            "FRAUD_ALERT_RESOLVED",
            f"Alert {alert_id} resolved by {resolved_by}: {resolution_notes}",
            alert_id=alert_id,
            performed_by=resolved_by,
        )
        logger.info("fraud_alert_resolved", alert_id=alert_id, resolved_by=resolved_by)
        return resolved

    async def _create_alert(self, transaction: Transaction, result: FraudDetectionResult) -> FraudAlert:
        alert = await self._store.save_alert(build_alert(transaction, result))
        await self._audit(
            transaction.transaction_reference,
            "FRAUD_ALERT_CREATED",
            f"Fraud alert created: ID {alert.id}",
            alert_id=alert.id,
        )
        logger.warning(
            "fraud_alert_created",
            alert_id=alert.id,
            transaction_reference=transaction.transaction_reference,
            account_id=transaction.account_id,
            severity=alert.severity.value,
            risk_score=str(alert.risk_score),
        )
        return alert

    async def _audit(
        self,
        transaction_reference: str | None,
        action: str,
        details: str,
        alert_id: int | None = None,
        performed_by: str = "SYSTEM",
        successful: bool = True,
    ) -> None:
        await self._store.append_audit_log(
            AuditLogEntry(
                transaction_reference=transaction_reference,
                alert_id=alert_id,
                action=action,
                details=details,
                performed_by=performed_by,
                successful=successful,
            )
        )

    async def _audit_failure(self, transaction_reference: str, error: Exception) -> None:
        entry = AuditLogEntry(
            transaction_reference=transaction_reference,
            action="FRAUD_DETECTION_ERROR",
            details=f"Error during fraud detection: {error}",
            successful=False,
        )
        try:
            await self._store.append_failure_audit_log(entry)
        except Exception:
            logger.exception(
                "audit_log_write_failed",
                transaction_reference=transaction_reference,
                action="FRAUD_DETECTION_ERROR",
            )
