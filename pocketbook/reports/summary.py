"""
Summary Reporter

Answers "how did I do over this period": income, expenses, net income,
savings rate, balances and where the money went.

DESIGN DECISION: Every figure comes from stored transactions.
The reporter fetches rows and hands them to the reconciliation engine;
it never computes numbers of its own.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from pocketbook.audit import AuditLogger
from pocketbook.budgeting.reconciliation import compute_period_summary
from pocketbook.models.audit import AuditEventBuilder
from pocketbook.models.finance import SummaryData
from pocketbook.services.storage import FinanceStorageInterface


class InvalidDateRangeError(ValueError):
    """The period starts after it ends."""
    pass


class SummaryReporter:
    """Builds period summaries for a user."""

    def __init__(
        self,
        storage: FinanceStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def summarize(
        self,
        user_id: str,
        start: Optional[date],
        end: date,
        correlation_id: Optional[UUID] = None,
    ) -> SummaryData:
        """
        Summarize the user's finances between start and end (inclusive).

        Balances are as of end and include everything before start.

        Raises:
            InvalidDateRangeError: If start is after end
        """
        if start is not None and start > end:
            raise InvalidDateRangeError(
                f"Start date {start.isoformat()} is after end date {end.isoformat()}"
            )

        # No lower bound: balances need the full history
        transactions = await self._storage.list_transactions(user_id, date_to=end)
        accounts = await self._storage.list_accounts(user_id)
        categories = await self._storage.list_categories(user_id)

        summary = compute_period_summary(
            transactions,
            accounts,
            categories,
            as_of=end,
            period_start=start,
        )

        if self._audit_logger:
            await self._audit_logger.log(AuditEventBuilder.summary_computed(
                user_id=user_id,
                start=start.isoformat() if start else None,
                end=end.isoformat(),
                transaction_count=len(transactions),
                correlation_id=correlation_id,
            ))

        return summary
