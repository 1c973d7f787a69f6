"""
Main Orchestrator for Pocketbook

This module ties together all the components: storage, audit logging,
the budget planner, the summary reporter, the seat allocator and the
input validator.

DESIGN DECISION: Components are wired in exactly one place.
The HTTP layer and the tests receive a ready AppComponents bundle and
never construct storage themselves, so swapping the storage backend is
a configuration change only.
"""

from typing import Optional

from pocketbook.audit import AuditLogger, get_logger
from pocketbook.budgeting import BudgetPlanner
from pocketbook.config import get_settings
from pocketbook.reports import SummaryReporter
from pocketbook.services.storage import (
    FinanceStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinanceStorage,
    GoogleSheetsSubscriptionStorage,
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
    InMemorySubscriptionStorage,
    SubscriptionStorageInterface,
)
from pocketbook.subscriptions import SeatAllocator
from pocketbook.validation import BudgetInputValidator


logger = get_logger(__name__)


class AppComponents:
    """Everything a request handler needs, built once per process."""

    def __init__(
        self,
        finance_storage: FinanceStorageInterface,
        subscription_storage: SubscriptionStorageInterface,
        audit_logger: AuditLogger,
        sheets_client: Optional[GoogleSheetsClient] = None,
    ):
        self.finance_storage = finance_storage
        self.subscription_storage = subscription_storage
        self.audit_logger = audit_logger
        self.sheets_client = sheets_client

        self.planner = BudgetPlanner(finance_storage, audit_logger)
        self.reporter = SummaryReporter(finance_storage, audit_logger)
        self.seats = SeatAllocator(subscription_storage, audit_logger)
        self.validator = BudgetInputValidator(finance_storage)


def _in_memory_components(persist_audit: bool) -> AppComponents:
    audit_logger = AuditLogger(InMemoryAuditStorage()) if persist_audit else AuditLogger()
    return AppComponents(
        finance_storage=InMemoryFinanceStorage(),
        subscription_storage=InMemorySubscriptionStorage(),
        audit_logger=audit_logger,
    )


def create_app_components(
    use_storage: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize the configured storage backend.
                    Set to False for testing: rows are kept in memory and
                    audit events are only logged locally.

    Returns:
        The wired AppComponents
    """
    if not use_storage:
        return _in_memory_components(persist_audit=False)

    backend = get_settings().app.storage_backend
    if backend != "google_sheets":
        return _in_memory_components(persist_audit=True)

    try:
        sheets_client = GoogleSheetsClient()
        sheets_client.connect()
    except Exception as e:
        # Storage not configured - continue in memory
        logger.warning("storage_not_configured", backend=backend, error=str(e))
        return _in_memory_components(persist_audit=True)

    return AppComponents(
        finance_storage=GoogleSheetsFinanceStorage(sheets_client),
        subscription_storage=GoogleSheetsSubscriptionStorage(sheets_client),
        audit_logger=AuditLogger(GoogleSheetsAuditStorage(sheets_client)),
        sheets_client=sheets_client,
    )
