"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is supported as a storage backend because:
1. Users can view and export their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (fine for a household)
- No transactions: seat reservation is serialized with a process-level
  lock, which holds only while a single process writes to the spreadsheet
- Limited query capabilities (we filter in Python)

Each entity lives in its own worksheet; the header row is the list of the
model's field names, so the row codec is generic over the pydantic models.
"""

import asyncio
import json
from datetime import date
from typing import Generic, Optional, TypeVar
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from pydantic import BaseModel
from tenacity import retry, stop_after_attempt, wait_exponential

from pocketbook.config import get_settings
from pocketbook.models.audit import AuditEvent, AuditEventType, AuditSeverity
from pocketbook.models.finance import (
    Budget,
    BudgetCategory,
    BudgetType,
    Category,
    Transaction,
    UserAccount,
    utcnow,
)
from pocketbook.models.subscription import (
    InvitationStatus,
    SubscriptionPlan,
    SubscriptionSeat,
    SubscriptionStatus,
    UserInvitation,
    UserSubscription,
)
from pocketbook.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    FinanceStorageInterface,
    StorageError,
    SubscriptionStorageInterface,
)


# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "user_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

ModelT = TypeVar("ModelT", bound=BaseModel)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @property
    def settings(self):
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet whose first row holds the given headers."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet


class SheetTable(Generic[ModelT]):
    """
    One worksheet holding one pydantic model per row.

    Cells are the JSON-mode dump of each field; empty cells read back as
    "field not set" so model defaults apply. An empty string in an
    optional text field therefore reads back as None.
    """

    def __init__(
        self,
        client: GoogleSheetsClient,
        title: str,
        model: type[ModelT],
        key: str = "id",
    ):
        self._client = client
        self._title = title
        self._model = model
        self._key = key
        self.columns = list(model.model_fields)
        self._key_index = self.columns.index(key)

    def worksheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(self._title, self.columns)

    @staticmethod
    def _cell(value) -> str:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (dict, list)):
            return json.dumps(value)
        return str(value)

    def to_row(self, obj: ModelT) -> list[str]:
        data = obj.model_dump(mode="json")
        return [self._cell(data[column]) for column in self.columns]

    def from_row(self, row: list[str]) -> ModelT:
        data = {
            column: value
            for column, value in zip(self.columns, row)
            if value != ""
        }
        return self._model.model_validate(data)

    def all(self) -> list[ModelT]:
        """Read every well-formed row. Malformed rows are skipped."""
        records = []
        for row in self.worksheet().get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                records.append(self.from_row(row))
            except ValueError:
                continue
        return records

    def upsert(self, obj: ModelT) -> None:
        """Replace the row with the same key, or append a new one."""
        sheet = self.worksheet()
        key_value = self._cell(obj.model_dump(mode="json")[self._key])
        new_row = self.to_row(obj)

        # Row 1 is the header
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if len(row) > self._key_index and row[self._key_index] == key_value:
                sheet.update(range_name=f"A{idx}", values=[new_row])
                return

        sheet.append_row(new_row, value_input_option="RAW")

    def delete(self, obj: ModelT) -> bool:
        """Remove the row with the same key. False if there is none."""
        sheet = self.worksheet()
        key_value = self._cell(obj.model_dump(mode="json")[self._key])

        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if len(row) > self._key_index and row[self._key_index] == key_value:
                sheet.delete_rows(idx)
                return True
        return False


class GoogleSheetsFinanceStorage(FinanceStorageInterface):
    """Google Sheets implementation of finance storage."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        settings = self._client.settings
        self._categories = SheetTable(self._client, settings.categories_sheet_name, Category)
        self._accounts = SheetTable(self._client, settings.accounts_sheet_name, UserAccount)
        self._transactions = SheetTable(
            self._client, settings.transactions_sheet_name, Transaction
        )
        self._budgets = SheetTable(self._client, settings.budgets_sheet_name, Budget)
        self._budget_categories = SheetTable(
            self._client, settings.budget_categories_sheet_name, BudgetCategory
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_category(self, category: Category) -> bool:
        try:
            self._categories.upsert(category)
            return True
        except Exception as e:
            raise StorageError(f"Failed to save category: {e}")

    async def get_category(self, user_id: str, category_id: int) -> Optional[Category]:
        for category in await self.list_categories(user_id):
            if category.id == category_id:
                return category
        return None

    async def list_categories(
        self,
        user_id: str,
        include_archived: bool = True,
    ) -> list[Category]:
        try:
            return [
                c for c in self._categories.all()
                if c.user_id == user_id and (include_archived or not c.archived)
            ]
        except Exception as e:
            raise StorageError(f"Failed to list categories: {e}")

    async def next_category_id(self) -> int:
        try:
            return max((c.id for c in self._categories.all()), default=0) + 1
        except Exception as e:
            raise StorageError(f"Failed to read categories: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_account(self, account: UserAccount) -> bool:
        try:
            self._accounts.upsert(account)
            return True
        except Exception as e:
            raise StorageError(f"Failed to save account: {e}")

    async def list_accounts(self, user_id: str) -> list[UserAccount]:
        try:
            return [a for a in self._accounts.all() if a.user_id == user_id]
        except Exception as e:
            raise StorageError(f"Failed to list accounts: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_transaction(self, transaction: Transaction) -> bool:
        try:
            self._transactions.upsert(transaction)
            return True
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")

    async def get_transaction(
        self,
        user_id: str,
        transaction_id: UUID,
    ) -> Optional[Transaction]:
        for tx in await self.list_transactions(user_id, include_transfers=True):
            if tx.id == transaction_id:
                return tx
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def delete_transaction(self, user_id: str, transaction_id: UUID) -> bool:
        tx = await self.get_transaction(user_id, transaction_id)
        if tx is None:
            return False
        try:
            return self._transactions.delete(tx)
        except Exception as e:
            raise StorageError(f"Failed to delete transaction: {e}")

    async def list_transactions(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        include_transfers: bool = False,
        category_id: Optional[int] = None,
        account_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        try:
            rows = self._transactions.all()
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")

        results = []
        for tx in rows:
            if tx.user_id != user_id:
                continue
            if date_from and tx.date < date_from:
                continue
            if date_to and tx.date > date_to:
                continue
            if tx.is_transfer and not include_transfers:
                continue
            if category_id is not None and tx.category_id != category_id:
                continue
            if account_id is not None and tx.account_id != account_id:
                continue
            results.append(tx)

        results.sort(key=lambda t: t.date)
        return results

    async def find_month_budget(
        self,
        user_id: str,
        budget_type: BudgetType,
        year: int,
        month: int,
    ) -> Optional[Budget]:
        try:
            budgets = self._budgets.all()
        except Exception as e:
            raise StorageError(f"Failed to read budgets: {e}")

        for budget in budgets:
            if (
                budget.user_id == user_id
                and budget.type == budget_type
                and budget.start_date.year == year
                and budget.start_date.month == month
            ):
                return budget
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_budget(self, budget: Budget) -> bool:
        try:
            self._budgets.upsert(budget)
            return True
        except Exception as e:
            raise StorageError(f"Failed to save budget: {e}")

    async def get_budget_category(
        self,
        budget_id: UUID,
        category_id: int,
    ) -> Optional[BudgetCategory]:
        for row in await self.list_budget_categories(budget_id):
            if row.category_id == category_id:
                return row
        return None

    async def save_budget_category(self, row: BudgetCategory) -> bool:
        existing = await self.get_budget_category(row.budget_id, row.category_id)
        if existing is not None and existing.id != row.id:
            raise DuplicateError(
                f"Budget {row.budget_id} already has a row for category {row.category_id}"
            )
        try:
            self._budget_categories.upsert(row)
            return True
        except Exception as e:
            raise StorageError(f"Failed to save budget category: {e}")

    async def list_budget_categories(self, budget_id: UUID) -> list[BudgetCategory]:
        try:
            return [r for r in self._budget_categories.all() if r.budget_id == budget_id]
        except Exception as e:
            raise StorageError(f"Failed to list budget categories: {e}")


class GoogleSheetsSubscriptionStorage(SubscriptionStorageInterface):
    """
    Google Sheets implementation of subscription storage.

    Seat reservations are serialized with one asyncio.Lock per storage
    instance; run a single writer process against the spreadsheet.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        settings = self._client.settings
        self._plans = SheetTable(self._client, settings.plans_sheet_name, SubscriptionPlan)
        self._subscriptions = SheetTable(
            self._client, settings.subscriptions_sheet_name, UserSubscription
        )
        self._seats = SheetTable(self._client, settings.seats_sheet_name, SubscriptionSeat)
        self._invitations = SheetTable(
            self._client, settings.invitations_sheet_name, UserInvitation
        )
        self._seat_lock = asyncio.Lock()

    async def save_plan(self, plan: SubscriptionPlan) -> bool:
        try:
            self._plans.upsert(plan)
            return True
        except Exception as e:
            raise StorageError(f"Failed to save plan: {e}")

    async def get_plan(self, plan_id: str) -> Optional[SubscriptionPlan]:
        try:
            return next((p for p in self._plans.all() if p.id == plan_id), None)
        except Exception as e:
            raise StorageError(f"Failed to read plans: {e}")

    async def save_subscription(self, subscription: UserSubscription) -> bool:
        try:
            self._subscriptions.upsert(subscription)
            return True
        except Exception as e:
            raise StorageError(f"Failed to save subscription: {e}")

    async def get_active_subscription(self, user_id: str) -> Optional[UserSubscription]:
        try:
            subscriptions = self._subscriptions.all()
        except Exception as e:
            raise StorageError(f"Failed to read subscriptions: {e}")

        for sub in subscriptions:
            if sub.user_id == user_id and sub.status == SubscriptionStatus.ACTIVE:
                return sub
        return None

    async def get_seat(
        self,
        subscription_id: UUID,
        user_id: str,
    ) -> Optional[SubscriptionSeat]:
        for seat in await self.list_seats(subscription_id):
            if seat.user_id == user_id:
                return seat
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_seat(self, seat: SubscriptionSeat) -> bool:
        try:
            self._seats.upsert(seat)
            return True
        except Exception as e:
            raise StorageError(f"Failed to save seat: {e}")

    async def list_seats(self, subscription_id: UUID) -> list[SubscriptionSeat]:
        try:
            seats = [s for s in self._seats.all() if s.subscription_id == subscription_id]
        except Exception as e:
            raise StorageError(f"Failed to list seats: {e}")
        seats.sort(key=lambda s: s.assigned_at)
        return seats

    async def count_active_seats(self, subscription_id: UUID) -> int:
        return sum(1 for s in await self.list_seats(subscription_id) if s.is_active)

    async def reserve_seat(
        self,
        subscription_id: UUID,
        user_id: str,
        max_seats: int,
    ) -> bool:
        async with self._seat_lock:
            seats = await self.list_seats(subscription_id)
            seat = next((s for s in seats if s.user_id == user_id), None)
            if seat is not None and seat.is_active:
                return True

            if sum(1 for s in seats if s.is_active) >= max_seats:
                return False

            now = utcnow()
            if seat is None:
                seat = SubscriptionSeat(
                    subscription_id=subscription_id,
                    user_id=user_id,
                    assigned_at=now,
                )
            else:
                seat = seat.model_copy(update={
                    "is_active": True,
                    "deactivated_at": None,
                    "updated_at": now,
                })
            return await self.save_seat(seat)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_invitation(self, invitation: UserInvitation) -> bool:
        try:
            self._invitations.upsert(invitation)
            return True
        except Exception as e:
            raise StorageError(f"Failed to save invitation: {e}")

    async def get_invitation_by_token(self, token: str) -> Optional[UserInvitation]:
        try:
            return next((i for i in self._invitations.all() if i.token == token), None)
        except Exception as e:
            raise StorageError(f"Failed to read invitations: {e}")

    async def list_invitations(
        self,
        inviter_id: str,
        status: Optional[InvitationStatus] = None,
    ) -> list[UserInvitation]:
        try:
            invitations = [
                i for i in self._invitations.all()
                if i.inviter_id == inviter_id and (status is None or i.status == status)
            ]
        except Exception as e:
            raise StorageError(f"Failed to list invitations: {e}")
        invitations.sort(key=lambda i: i.created_at)
        return invitations


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(
            self._client.settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=safe_get(1),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            user_id=safe_get(6) or None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._sheet().append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    def _all_events(self) -> list[AuditEvent]:
        events = []
        for row in self._sheet().get_all_values()[1:]:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except ValueError:
                    continue
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            events = [e for e in self._all_events() if e.correlation_id == correlation_id]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        # Sort chronologically
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = self._all_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
