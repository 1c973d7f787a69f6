"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
In-memory storage backs tests and local runs; Google Sheets is the
persistent backend. Both honour the same interfaces.
"""

from pocketbook.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    FinanceStorageInterface,
    NotFoundError,
    StorageError,
    SubscriptionStorageInterface,
)
from pocketbook.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
    InMemorySubscriptionStorage,
)
from pocketbook.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinanceStorage,
    GoogleSheetsSubscriptionStorage,
    SheetTable,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "FinanceStorageInterface",
    "SubscriptionStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryFinanceStorage",
    "InMemorySubscriptionStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsFinanceStorage",
    "GoogleSheetsSubscriptionStorage",
    "SheetTable",
]
