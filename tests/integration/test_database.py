"""Integration tests for database models."""

import pytest

pytestmark = pytest.mark.integration


class TestDatabase:
    def test_models_importable(self):
        from src.db.models import AccountDB, AuditLogDB, CustomerDB, FraudAlertDB, TransactionDB

        assert CustomerDB.__tablename__ == "customers"
        assert AccountDB.__tablename__ == "accounts"
        assert TransactionDB.__tablename__ == "transactions"
        assert FraudAlertDB.__tablename__ == "fraud_alerts"
        assert AuditLogDB.__tablename__ == "audit_logs"

    def test_transaction_model_fields(self):
        from src.db.models import TransactionDB

        columns = {c.name for c in TransactionDB.__table__.columns}
        assert "transaction_reference" in columns
        assert "account_id" in columns
        assert "amount" in columns
        assert "timestamp" in columns
        assert "location" in columns
        assert "status" in columns

    def test_fraud_alert_model_fields(self):
        from src.db.models import FraudAlertDB

        columns = {c.name for c in FraudAlertDB.__table__.columns}
        assert "transaction_reference" in columns
        assert "risk_score" in columns
        assert "confidence_score" in columns
        assert "status" in columns
        assert "resolved_by" in columns
        assert "resolution_notes" in columns

    def test_account_references_customer(self):
        from src.db.models import AccountDB

        foreign_keys = {fk.target_fullname for fk in AccountDB.__table__.foreign_keys}
        assert foreign_keys == {"customers.id"}

    def test_audit_log_model_fields(self):
        from src.db.models import AuditLogDB

        columns = {c.name for c in AuditLogDB.__table__.columns}
        assert {"action", "details", "performed_by", "successful", "alert_id"} <= columns

    def test_transaction_reference_unique(self):
        from src.db.models import TransactionDB

        assert TransactionDB.__table__.c.transaction_reference.unique
