"""
HTTP Request Schemas and JSON Helpers

Request bodies use camelCase keys as sent by the web client.
Responses are domain models dumped in JSON mode (Decimals become exact
strings) with their keys converted to camelCase.
"""

from datetime import date
from typing import Any, Optional, TypeVar
from uuid import UUID

from fastapi import HTTPException
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from pocketbook.models.finance import AccountType


ModelT = TypeVar("ModelT", bound=BaseModel)


def camelize(data: Any) -> Any:
    """Convert dict keys to camelCase, recursively."""
    if isinstance(data, dict):
        return {to_camel(str(k)): camelize(v) for k, v in data.items()}
    if isinstance(data, list):
        return [camelize(item) for item in data]
    return data


def to_json(model: Optional[BaseModel]) -> Any:
    """Dump a domain model for a response body."""
    if model is None:
        return None
    return camelize(model.model_dump(mode="json"))


def number_to_text(v: Any) -> Any:
    # JSON numbers arrive as int/float; keep their literal digits
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return v


class CamelModel(BaseModel):
    """Request body accepting camelCase (or snake_case) keys."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class PlannedAmountRequest(CamelModel):
    """Body of POST/PUT /api/budgets."""

    category_id: Optional[int] = Field(default=None, description="Category to plan")
    amount: Optional[str] = Field(default=None, description="Planned amount, e.g. \"1500.00\"")
    year: Optional[int] = Field(default=None, ge=1900, le=9999)
    month: Optional[int] = Field(default=None, ge=1, le=12)

    amount_as_text = field_validator('amount', mode='before')(number_to_text)


class InvitationRequest(CamelModel):
    """Body of POST /api/invitations."""

    email: str = Field(..., min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    name: Optional[str] = Field(default=None, max_length=100)


class InvitationTokenRequest(CamelModel):
    """Body of POST /api/invitations/accept and /decline."""

    token: str = Field(..., min_length=1)


def build_model(model: type[ModelT], **data) -> ModelT:
    """Build a domain model from request data; invalid data is a 400."""
    try:
        return model(**data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first["loc"])
        detail = f"{field}: {first['msg']}" if field else first["msg"]
        raise HTTPException(status_code=400, detail=detail)


class TransactionRequest(CamelModel):
    """Body of POST /api/transactions and PUT /api/transactions/{id}."""

    account_id: UUID
    amount: str = Field(..., description="Signed amount, e.g. \"-120.00\"")
    date: date
    description: str = Field(default="", max_length=200)
    category_id: Optional[int] = None
    payee_id: Optional[int] = None
    is_transfer: bool = False
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    notes: Optional[str] = None

    amount_as_text = field_validator('amount', mode='before')(number_to_text)


class AccountRequest(CamelModel):
    """Body of POST /api/accounts."""

    name: str = Field(..., min_length=1, max_length=100)
    type: AccountType = AccountType.CHECKING
    balance: Optional[str] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)


class CategoryRequest(CamelModel):
    """Body of POST /api/categories."""

    name: str = Field(..., min_length=1, max_length=40)
    description: Optional[str] = Field(default=None, max_length=140)
    is_income: bool = False
    exclude_from_budget: bool = False
    exclude_from_totals: bool = False
    order: int = 0
