"""
Category Routes
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wokabulary.database import get_db
from wokabulary.models import Category, FoodItem
from wokabulary.schemas import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ErrorResponse,
    MessageResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/categories", tags=["Categories"])


async def _name_taken(db: AsyncSession, name: str, exclude_id: Optional[str] = None) -> bool:
    query = select(Category.id).where(func.lower(Category.name) == name.lower())
    if exclude_id:
        query = query.where(Category.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


@router.get("", response_model=List[CategoryResponse])
async def list_categories(db: AsyncSession = Depends(get_db)) -> List[Category]:
    result = await db.execute(select(Category).order_by(Category.name))
    return result.scalars().all()


@router.post(
    "",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
)
async def create_category(
    category_data: CategoryCreate,
    db: AsyncSession = Depends(get_db),
) -> Category:
    if await _name_taken(db, category_data.name):
        raise HTTPException(status_code=409, detail="Category with this name already exists")

    category = Category(name=category_data.name, description=category_data.description)
    db.add(category)
    await db.commit()

    logger.info(f"Category created: {category.name}")
    return category


@router.put(
    "/{category_id}",
    response_model=CategoryResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_category(
    category_id: str,
    category_data: CategoryUpdate,
    db: AsyncSession = Depends(get_db),
) -> Category:
    category = await db.get(Category, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    updates = category_data.model_dump(exclude_unset=True)
    if "name" in updates:
        if await _name_taken(db, updates["name"], exclude_id=category_id):
            raise HTTPException(status_code=409, detail="Category with this name already exists")

    for key, value in updates.items():
        setattr(category, key, value)
    await db.commit()

    logger.info(f"Category updated: {category.name}")
    return category


@router.delete(
    "/{category_id}",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def delete_category(
    category_id: str,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Delete a category that no food item uses."""
    category = await db.get(Category, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    result = await db.execute(
        select(FoodItem.id, FoodItem.name).where(FoodItem.category_id == category_id)
    )
    food_items = [{"id": row.id, "name": row.name} for row in result]

    if food_items:
        logger.warning(f"Refused to delete category {category.name}: {len(food_items)} food items")
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Cannot delete category with existing food items",
                "food_items": food_items,
            },
        )

    await db.delete(category)
    await db.commit()

    logger.info(f"Category deleted: {category.name}")
    return MessageResponse(message="Category deleted successfully")
