"""
Category endpoints.

Category ids are integers shared by every user, so new ids come from
storage rather than from the client.
"""

from fastapi import APIRouter, Depends, Query

from pocketbook.api.dependencies import get_components, get_current_user
from pocketbook.api.schemas import CategoryRequest, build_model, to_json
from pocketbook.audit import get_logger
from pocketbook.models.finance import Category
from pocketbook.orchestrator import AppComponents


logger = get_logger(__name__)

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("")
async def list_categories(
    include_archived: bool = Query(default=True, alias="includeArchived"),
    user_id: str = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    categories = await components.finance_storage.list_categories(
        user_id, include_archived=include_archived
    )
    categories.sort(key=lambda c: (c.order, c.name.lower()))
    return {"categories": [to_json(category) for category in categories]}


@router.post("")
async def create_category(
    body: CategoryRequest,
    user_id: str = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    storage = components.finance_storage
    category = build_model(
        Category,
        id=await storage.next_category_id(),
        user_id=user_id,
        **body.model_dump(exclude_none=True),
    )
    await storage.save_category(category)
    logger.info("category_created", user_id=user_id, category_id=category.id)
    return {"success": True, "data": to_json(category)}
