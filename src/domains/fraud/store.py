"""Storage collaborator used by rules, scoring, and the orchestrator.

The core only talks to ``FraudStore``. ``SQLAlchemyFraudStore`` backs it with
the ORM tables in ``src.db.models`` over an ``AsyncSession``.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.db.models import AccountDB, AuditLogDB, CustomerDB, FraudAlertDB, TransactionDB

from .models import (
    AccountSnapshot,
    AuditLogEntry,
    CustomerSnapshot,
    FraudAlert,
    FraudAlertStatus,
    Transaction,
)

logger = structlog.get_logger()


class FraudStore(ABC):
    @abstractmethod
    async def find_last_transaction_before(
        self, account_id: str, before: datetime
    ) -> Transaction | None:
        """Most recent transaction for the account strictly before ``before``."""
        ...

    @abstractmethod
    async def list_transactions_between(
        self, account_id: str, start: datetime, end: datetime
    ) -> list[Transaction]:
        """Transactions for the account with ``start <= timestamp <= end``."""
        ...

    @abstractmethod
    async def list_locations_between(
        self, account_id: str, start: datetime, end: datetime
    ) -> list[str]:
        """Distinct non-null location strings for the account in the window."""
        ...

    @abstractmethod
    async def get_account(self, account_id: str) -> AccountSnapshot | None: ...

    @abstractmethod
    async def get_customer_for_account(self, account_id: str) -> CustomerSnapshot | None: ...

    @abstractmethod
    async def save_transaction(self, transaction: Transaction) -> Transaction: ...

    @abstractmethod
    async def save_alert(self, alert: FraudAlert) -> FraudAlert: ...

    @abstractmethod
    async def get_alert(self, alert_id: int) -> FraudAlert | None: ...

    @abstractmethod
    async def list_alerts_for_account(self, account_id: str) -> list[FraudAlert]:
        """All alerts for the account, newest first."""
        ...

    @abstractmethod
    async def list_high_risk_alerts(
        self, min_risk_score: Decimal, statuses: list[FraudAlertStatus]
    ) -> list[FraudAlert]:
        """Alerts at or above ``min_risk_score`` in ``statuses``, highest risk first."""
        ...

    @abstractmethod
    async def append_audit_log(self, entry: AuditLogEntry) -> AuditLogEntry: ...

    async def append_failure_audit_log(self, entry: AuditLogEntry) -> AuditLogEntry:
        """Record an entry that must outlive a failed unit of work."""
        return await self.append_audit_log(entry)


def _transaction_from_row(row: TransactionDB) -> Transaction:
    return Transaction(
        id=row.id,
        transaction_reference=row.transaction_reference,
        account_id=row.account_id,
        amount=row.amount,
        currency=row.currency,
        timestamp=row.timestamp,
        location=row.location,
        transaction_type=row.transaction_type,
        status=row.status,
        merchant_id=row.merchant_id,
        merchant_name=row.merchant_name,
        device_id=row.device_id,
        ip_address=row.ip_address,
    )


def _audit_row(entry: AuditLogEntry) -> AuditLogDB:
    return AuditLogDB(
        transaction_reference=entry.transaction_reference,
        alert_id=entry.alert_id,
        action=entry.action,
        details=entry.details,
        performed_by=entry.performed_by,
        successful=entry.successful,
        created_at=entry.created_at,
    )


def _alert_from_row(row: FraudAlertDB) -> FraudAlert:
    return FraudAlert(
        id=row.id,
        transaction_reference=row.transaction_reference,
        account_id=row.account_id,
        rule_type=row.rule_type,
        rule_description=row.rule_description,
        severity=row.severity,
        status=row.status,
        risk_score=row.risk_score,
        confidence_score=row.confidence_score,
        created_at=row.created_at,
        updated_at=row.updated_at,
        resolved_by=row.resolved_by,
        resolved_at=row.resolved_at,
        resolution_notes=row.resolution_notes,
    )


class SQLAlchemyFraudStore(FraudStore):
    """``FraudStore`` over an async SQLAlchemy session.

    Writes are flushed, not committed; the caller owns the transaction
    boundary (see ``get_session``). Failure audit entries are the exception:
    they are committed through a separate session so a rollback of the
    caller's session does not discard them.
    """

    def __init__(
        self,
        session: AsyncSession,
        audit_session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        self._session = session
        # a connection-bound session would share the caller's transaction
        if audit_session_factory is None and isinstance(session.bind, AsyncEngine):
            audit_session_factory = async_sessionmaker(session.bind, expire_on_commit=False)
        self._audit_session_factory = audit_session_factory

    async def find_last_transaction_before(
        self, account_id: str, before: datetime
    ) -> Transaction | None:
        stmt = (
            select(TransactionDB)
            .where(TransactionDB.account_id == account_id, TransactionDB.timestamp < before)
            .order_by(TransactionDB.timestamp.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()
        return _transaction_from_row(row) if row else None

    async def list_transactions_between(
        self, account_id: str, start: datetime, end: datetime
    ) -> list[Transaction]:
        stmt = select(TransactionDB).where(
            TransactionDB.account_id == account_id,
            TransactionDB.timestamp >= start,
            TransactionDB.timestamp <= end,
        )
        result = await self._session.execute(stmt)
        return [_transaction_from_row(row) for row in result.scalars().all()]

    async def list_locations_between(
        self, account_id: str, start: datetime, end: datetime
    ) -> list[str]:
        stmt = (
            select(TransactionDB.location)
            .where(
                TransactionDB.account_id == account_id,
                TransactionDB.timestamp >= start,
                TransactionDB.timestamp <= end,
                TransactionDB.location.isnot(None),
            )
            .distinct()
        )
        result = await self._session.execute(stmt)
        return [row[0] for row in result.fetchall()]

    async def get_account(self, account_id: str) -> AccountSnapshot | None:
        stmt = select(AccountDB).where(AccountDB.account_number == account_id)
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return AccountSnapshot(
            account_number=row.account_number,
            customer_id=row.customer_id,
            risk_level=row.risk_level,
            status=row.status,
            flagged_for_monitoring=bool(row.flagged_for_monitoring),
            opened_at=row.opened_at,
        )

    async def get_customer_for_account(self, account_id: str) -> CustomerSnapshot | None:
        stmt = (
            select(CustomerDB)
            .join(AccountDB, AccountDB.customer_id == CustomerDB.id)
            .where(AccountDB.account_number == account_id)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return CustomerSnapshot(
            customer_number=row.customer_number,
            risk_level=row.risk_level,
            status=row.status,
            customer_since=row.customer_since,
            last_login=row.last_login,
        )

    async def save_transaction(self, transaction: Transaction) -> Transaction:
        stmt = select(TransactionDB).where(
            TransactionDB.transaction_reference == transaction.transaction_reference
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None:
            row = TransactionDB(transaction_reference=transaction.transaction_reference)
            self._session.add(row)

        row.account_id = transaction.account_id
        row.amount = transaction.amount
        row.currency = transaction.currency
        row.timestamp = transaction.timestamp
        row.location = transaction.location
        row.transaction_type = transaction.transaction_type.value
        row.status = transaction.status.value
        row.merchant_id = transaction.merchant_id
        row.merchant_name = transaction.merchant_name
        row.device_id = transaction.device_id
        row.ip_address = transaction.ip_address

        await self._session.flush()
        return transaction.model_copy(update={"id": row.id})

    async def save_alert(self, alert: FraudAlert) -> FraudAlert:
        row = await self._session.get(FraudAlertDB, alert.id) if alert.id is not None else None
        if row is None:
            row = FraudAlertDB()
            self._session.add(row)

        row.transaction_reference = alert.transaction_reference
        row.account_id = alert.account_id
        row.rule_type = alert.rule_type
        row.rule_description = alert.rule_description
        row.severity = alert.severity.value
        row.status = alert.status.value
        row.risk_score = alert.risk_score
        row.confidence_score = alert.confidence_score
        row.resolved_by = alert.resolved_by
        row.resolved_at = alert.resolved_at
        row.resolution_notes = alert.resolution_notes
        row.created_at = alert.created_at
        row.updated_at = alert.updated_at

        await self._session.flush()
        return alert.model_copy(update={"id": row.id})

    async def get_alert(self, alert_id: int) -> FraudAlert | None:
        row = await self._session.get(FraudAlertDB, alert_id)
        return _alert_from_row(row) if row else None

    async def list_alerts_for_account(self, account_id: str) -> list[FraudAlert]:
        stmt = (
            select(FraudAlertDB)
            .where(FraudAlertDB.account_id == account_id)
            .order_by(FraudAlertDB.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return [_alert_from_row(row) for row in result.scalars().all()]

    async def list_high_risk_alerts(
        self, min_risk_score: Decimal, statuses: list[FraudAlertStatus]
    ) -> list[FraudAlert]:
        stmt = (
            select(FraudAlertDB)
            .where(
                FraudAlertDB.risk_score >= min_risk_score,
                FraudAlertDB.status.in_([s.value for s in statuses]),
            )
            .order_by(FraudAlertDB.risk_score.desc())
        )
        result = await self._session.execute(stmt)
        return [_alert_from_row(row) for row in result.scalars().all()]

    async def append_audit_log(self, entry: AuditLogEntry) -> AuditLogEntry:
        row = _audit_row(entry)
        self._session.add(row)
        await self._session.flush()
        logger.debug("audit_log_appended", action=entry.action, audit_id=row.id)
        return entry.model_copy(update={"id": row.id})

    async def append_failure_audit_log(self, entry: AuditLogEntry) -> AuditLogEntry:
        if self._audit_session_factory is None:
            return await self.append_audit_log(entry)

        row = _audit_row(entry)
        async with self._audit_session_factory() as session:
            session.add(row)
            await session.commit()
        logger.debug("audit_log_committed", action=entry.action, audit_id=row.id)
        return entry.model_copy(update={"id": row.id})
