"""
Transaction endpoints.

Transactions are the raw rows every budget and summary figure is built
from. The account must belong to the caller, and so must the category
when one is given.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from pocketbook.api.dependencies import get_components, get_current_user
from pocketbook.api.schemas import TransactionRequest, build_model, to_json
from pocketbook.audit import get_logger
from pocketbook.budgeting import CategoryNotFoundError
from pocketbook.models.finance import Transaction
from pocketbook.orchestrator import AppComponents


logger = get_logger(__name__)

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


async def _check_references(
    components: AppComponents,
    user_id: str,
    body: TransactionRequest,
) -> None:
    storage = components.finance_storage
    accounts = await storage.list_accounts(user_id)
    if not any(account.id == body.account_id for account in accounts):
        raise HTTPException(status_code=404, detail="Account not found")
    if body.category_id is not None:
        if await storage.get_category(user_id, body.category_id) is None:
            raise CategoryNotFoundError(body.category_id)


@router.get("")
async def list_transactions(
    start: Optional[date] = Query(default=None, alias="startDate"),
    end: Optional[date] = Query(default=None, alias="endDate"),
    account_id: Optional[UUID] = Query(default=None, alias="accountId"),
    category_id: Optional[int] = Query(default=None, alias="categoryId"),
    user_id: str = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    """The caller's transactions, newest first. Transfers are included."""
    transactions = await components.finance_storage.list_transactions(
        user_id,
        date_from=start,
        date_to=end,
        include_transfers=True,
        category_id=category_id,
        account_id=account_id,
    )
    return {"transactions": [to_json(tx) for tx in reversed(transactions)]}


@router.post("")
async def create_transaction(
    body: TransactionRequest,
    user_id: str = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    await _check_references(components, user_id, body)

    transaction = build_model(
        Transaction,
        user_id=user_id,
        **body.model_dump(exclude_none=True),
    )
    await components.finance_storage.save_transaction(transaction)
    logger.info("transaction_created", user_id=user_id, transaction_id=str(transaction.id))
    return {"success": True, "data": to_json(transaction)}


@router.put("/{transaction_id}")
async def update_transaction(
    transaction_id: UUID,
    body: TransactionRequest,
    user_id: str = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    """Replace a transaction; fields left out of the body take their defaults."""
    storage = components.finance_storage
    existing = await storage.get_transaction(user_id, transaction_id)
    if existing is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    await _check_references(components, user_id, body)

    transaction = build_model(
        Transaction,
        id=existing.id,
        user_id=user_id,
        created_at=existing.created_at,
        **body.model_dump(exclude_none=True),
    )
    await storage.save_transaction(transaction)
    logger.info("transaction_updated", user_id=user_id, transaction_id=str(transaction.id))
    return {"success": True, "data": to_json(transaction)}


@router.delete("/{transaction_id}")
async def delete_transaction(
    transaction_id: UUID,
    user_id: str = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    if not await components.finance_storage.delete_transaction(user_id, transaction_id):
        raise HTTPException(status_code=404, detail="Transaction not found")
    logger.info("transaction_deleted", user_id=user_id, transaction_id=str(transaction_id))
    return {"success": True}
