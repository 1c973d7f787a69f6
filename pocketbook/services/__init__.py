"""Services package."""

from pocketbook.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    FinanceStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinanceStorage,
    GoogleSheetsSubscriptionStorage,
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
    InMemorySubscriptionStorage,
    NotFoundError,
    StorageError,
    SubscriptionStorageInterface,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "FinanceStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsFinanceStorage",
    "GoogleSheetsSubscriptionStorage",
    "InMemoryAuditStorage",
    "InMemoryFinanceStorage",
    "InMemorySubscriptionStorage",
    "NotFoundError",
    "StorageError",
    "SubscriptionStorageInterface",
]
