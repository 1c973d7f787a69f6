"""Money accounts of the caller."""

from fastapi import APIRouter, Depends

from pocketbook.api.dependencies import get_components, get_current_user
from pocketbook.api.schemas import AccountRequest, build_model, to_json
from pocketbook.audit import get_logger
from pocketbook.models.finance import UserAccount
from pocketbook.orchestrator import AppComponents


logger = get_logger(__name__)

router = APIRouter(prefix="/api/accounts", tags=["accounts"])


@router.get("")
async def list_accounts(
    user_id: str = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    accounts = await components.finance_storage.list_accounts(user_id)
    return {"accounts": [to_json(account) for account in accounts]}


@router.post("")
async def create_account(
    body: AccountRequest,
    user_id: str = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    account = build_model(
        UserAccount,
        user_id=user_id,
        **body.model_dump(exclude_none=True),
    )
    await components.finance_storage.save_account(account)
    logger.info("account_created", user_id=user_id, account_id=str(account.id))
    return {"success": True, "data": to_json(account)}
