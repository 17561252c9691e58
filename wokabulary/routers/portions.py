"""
Portion Routes

Serving sizes (Small, Regular, Large...) shared by every food item.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wokabulary.database import get_db
from wokabulary.models import FoodItem, FoodItemPortion, OrderItem, Portion
from wokabulary.schemas import (
    ErrorResponse,
    MessageResponse,
    PortionCreate,
    PortionResponse,
    PortionUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/portions", tags=["Portions"])


async def _name_taken(db: AsyncSession, name: str, exclude_id: Optional[str] = None) -> bool:
    query = select(Portion.id).where(func.lower(Portion.name) == name.lower())
    if exclude_id:
        query = query.where(Portion.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


@router.get("", response_model=List[PortionResponse])
async def list_portions(db: AsyncSession = Depends(get_db)) -> List[Portion]:
    result = await db.execute(select(Portion).order_by(Portion.created_at.desc()))
    return result.scalars().all()


@router.post(
    "",
    response_model=PortionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_portion(
    portion_data: PortionCreate,
    db: AsyncSession = Depends(get_db),
) -> Portion:
    if await _name_taken(db, portion_data.name):
        raise HTTPException(status_code=400, detail="Portion with this name already exists")

    portion = Portion(name=portion_data.name, description=portion_data.description)
    db.add(portion)
    await db.commit()

    logger.info(f"Portion created: {portion.name}")
    return portion


@router.put(
    "/{portion_id}",
    response_model=PortionResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_portion(
    portion_id: str,
    portion_data: PortionUpdate,
    db: AsyncSession = Depends(get_db),
) -> Portion:
    portion = await db.get(Portion, portion_id)
    if not portion:
        raise HTTPException(status_code=404, detail="Portion not found")

    updates = portion_data.model_dump(exclude_unset=True)
    if "name" in updates:
        if await _name_taken(db, updates["name"], exclude_id=portion_id):
            raise HTTPException(status_code=400, detail="Portion with this name already exists")

    for key, value in updates.items():
        setattr(portion, key, value)
    await db.commit()

    logger.info(f"Portion updated: {portion.name}")
    return portion


@router.delete(
    "/{portion_id}",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def delete_portion(
    portion_id: str,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Delete a portion that no food item is priced in."""
    portion = await db.get(Portion, portion_id)
    if not portion:
        raise HTTPException(status_code=404, detail="Portion not found")

    result = await db.execute(
        select(FoodItem.name)
        .join(FoodItemPortion, FoodItemPortion.food_item_id == FoodItem.id)
        .where(FoodItemPortion.portion_id == portion_id)
        .order_by(FoodItem.name)
    )
    affected_items = list(result.scalars().all())

    if affected_items:
        logger.warning(f"Refused to delete portion {portion.name}: used by {affected_items}")
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Cannot delete portion that is being used by food items",
                "affected_items": affected_items,
            },
        )

    history = await db.execute(select(OrderItem.id).where(OrderItem.portion_id == portion_id).limit(1))
    if history.first() is not None:
        raise HTTPException(
            status_code=400,
            detail="Cannot delete portion with order history. Disable it instead.",
        )

    await db.delete(portion)
    await db.commit()

    logger.info(f"Portion deleted: {portion.name}")
    return MessageResponse(message="Portion deleted successfully")
