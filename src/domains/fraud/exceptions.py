"""Errors raised by the fraud detection pipeline."""


class FraudDetectionError(Exception):
    """Processing a transaction failed; the original error is kept as ``cause``."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class AlertNotFoundError(LookupError):
    def __init__(self, alert_id: int) -> None:
        super().__init__(f"Fraud alert not found: {alert_id}")
        self.alert_id = alert_id
