"""Command-line entry point: score one transaction against the fraud database."""

import argparse
import asyncio
import sys

import structlog

from src.config import settings
from src.db.database import async_session_factory, init_db
from src.domains.fraud.config import FraudConfig
from src.domains.fraud.exceptions import FraudDetectionError
from src.domains.fraud.models import FraudDetectionResult, Transaction
from src.domains.fraud.service import FraudDetectionService
from src.shared.logging import setup_logging

logger = structlog.get_logger()


async def run(transaction: Transaction, config: FraudConfig | None = None) -> FraudDetectionResult:
    """Process ``transaction`` in its own session, committing on success."""
    async with async_session_factory() as session:
        service = FraudDetectionService.for_session(
            session, config, audit_session_factory=async_session_factory
        )
        try:
            result = await service.process_transaction(transaction)
        except FraudDetectionError:
            await session.rollback()
            raise
        await session.commit()
    return result


def _read_transaction(path: str) -> Transaction:
    if path == "-":
        return Transaction.model_validate_json(sys.stdin.read())
    with open(path, encoding="utf-8") as fh:
        return Transaction.model_validate_json(fh.read())


async def _main(args: argparse.Namespace) -> int:
    if args.init_db:
        await init_db()

    transaction = _read_transaction(args.transaction)
    try:
        result = await run(transaction, FraudConfig.from_env())
    except FraudDetectionError as exc:
        logger.error(
            "fraud_engine_failed",
            transaction_reference=transaction.transaction_reference,
            error=str(exc),
        )
        return 1

    print(result.model_dump_json(indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Run fraud detection for a single transaction",
        prog="python -m src.main",
    )
    parser.add_argument(
        "transaction",
        type=str,
        help="Path to a transaction JSON document, or - to read stdin",
    )
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create missing tables before processing",
    )
    args = parser.parse_args(argv)

    setup_logging(settings.log_level, json_logs=not settings.debug)
    logger.info(
        "fraud_engine_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
    )

    return asyncio.run(_main(args))


if __name__ == "__main__":
    sys.exit(main())
