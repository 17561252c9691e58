"""
Ingredient Routes

Ingredient master data and stock movements. Stock changes are single
UPDATE statements so concurrent movements never lose a write, and stock
out can never push a quantity below zero.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wokabulary.database import get_db
from wokabulary.models import FoodItem, FoodItemPortion, Ingredient, PortionIngredient
from wokabulary.schemas import (
    ErrorResponse,
    IngredientCreate,
    IngredientResponse,
    IngredientUpdate,
    MessageResponse,
    StockInRequest,
    StockInResponse,
    StockOutRequest,
    StockOutResponse,
)
from wokabulary.services.ordering import stock_decrement

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/ingredients", tags=["Ingredients"])


async def _get_ingredient(db: AsyncSession, ingredient_id: str) -> Ingredient:
    result = await db.execute(
        select(Ingredient)
        .where(Ingredient.id == ingredient_id)
        .execution_options(populate_existing=True)
    )
    ingredient = result.scalar_one_or_none()
    if not ingredient:
        raise HTTPException(status_code=404, detail="Ingredient not found")
    return ingredient


async def _name_taken(db: AsyncSession, name: str, exclude_id: Optional[str] = None) -> bool:
    query = select(Ingredient.id).where(func.lower(Ingredient.name) == name.lower())
    if exclude_id:
        query = query.where(Ingredient.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


@router.get("", response_model=List[IngredientResponse])
async def list_ingredients(db: AsyncSession = Depends(get_db)) -> List[Ingredient]:
    result = await db.execute(select(Ingredient).order_by(Ingredient.created_at.desc()))
    return result.scalars().all()


@router.get("/low-stock", response_model=List[IngredientResponse])
async def low_stock_ingredients(db: AsyncSession = Depends(get_db)) -> List[Ingredient]:
    """Active ingredients at or below their reorder level."""
    result = await db.execute(
        select(Ingredient)
        .where(
            Ingredient.is_active.is_(True),
            Ingredient.current_stock_quantity <= Ingredient.reorder_level,
        )
        .order_by(Ingredient.current_stock_quantity - Ingredient.reorder_level, Ingredient.name)
    )
    return result.scalars().all()


@router.post(
    "",
    response_model=IngredientResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_ingredient(
    ingredient_data: IngredientCreate,
    db: AsyncSession = Depends(get_db),
) -> Ingredient:
    if await _name_taken(db, ingredient_data.name):
        raise HTTPException(status_code=400, detail="An ingredient with this name already exists")

    ingredient = Ingredient(
        name=ingredient_data.name,
        description=ingredient_data.description,
        unit_of_measurement=ingredient_data.unit_of_measurement,
        reorder_level=ingredient_data.reorder_level,
        current_stock_quantity=0.0,
    )
    db.add(ingredient)
    await db.commit()

    logger.info(f"Ingredient created: {ingredient.name} ({ingredient.unit_of_measurement})")
    return ingredient


@router.put(
    "/{ingredient_id}",
    response_model=IngredientResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_ingredient(
    ingredient_id: str,
    ingredient_data: IngredientUpdate,
    db: AsyncSession = Depends(get_db),
) -> Ingredient:
    """Update master data. Stock only moves through add-stock and stock-out."""
    ingredient = await _get_ingredient(db, ingredient_id)

    updates = ingredient_data.model_dump(exclude_unset=True)
    for key in ("name", "unit_of_measurement"):
        if key in updates:
            updates[key] = (updates[key] or "").strip()
            if not updates[key]:
                raise HTTPException(status_code=400, detail="Name and unit of measurement are required")

    if "name" in updates and await _name_taken(db, updates["name"], exclude_id=ingredient_id):
        raise HTTPException(status_code=400, detail="An ingredient with this name already exists")

    for key, value in updates.items():
        setattr(ingredient, key, value)
    await db.commit()

    logger.info(f"Ingredient updated: {ingredient.name}")
    return ingredient


@router.delete(
    "/{ingredient_id}",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def delete_ingredient(
    ingredient_id: str,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    ingredient = await _get_ingredient(db, ingredient_id)

    result = await db.execute(
        select(FoodItem.name)
        .join(FoodItemPortion, FoodItemPortion.food_item_id == FoodItem.id)
        .join(PortionIngredient, PortionIngredient.food_item_portion_id == FoodItemPortion.id)
        .where(PortionIngredient.ingredient_id == ingredient_id)
        .distinct()
        .order_by(FoodItem.name)
    )
    affected_items = list(result.scalars().all())

    if affected_items:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Cannot delete ingredient that is used in recipes",
                "affected_items": affected_items,
            },
        )

    await db.delete(ingredient)
    await db.commit()

    logger.info(f"Ingredient deleted: {ingredient.name}")
    return MessageResponse(message="Ingredient deleted successfully")


@router.post(
    "/{ingredient_id}/add-stock",
    response_model=StockInResponse,
    responses={404: {"model": ErrorResponse}},
)
async def add_stock(
    ingredient_id: str,
    stock_in: StockInRequest,
    db: AsyncSession = Depends(get_db),
) -> StockInResponse:
    ingredient = await _get_ingredient(db, ingredient_id)
    previous_stock = ingredient.current_stock_quantity

    await db.execute(
        update(Ingredient)
        .where(Ingredient.id == ingredient_id)
        .values(current_stock_quantity=Ingredient.current_stock_quantity + stock_in.quantity)
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    ingredient = await _get_ingredient(db, ingredient_id)
    logger.info(
        f"Stock in: {stock_in.quantity} {ingredient.unit_of_measurement} of {ingredient.name} "
        f"(now {ingredient.current_stock_quantity})"
    )

    return StockInResponse(
        **IngredientResponse.model_validate(ingredient).model_dump(),
        added_quantity=stock_in.quantity,
        previous_stock=previous_stock,
    )


@router.post(
    "/{ingredient_id}/stock-out",
    response_model=StockOutResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def stock_out(
    ingredient_id: str,
    stock_out_data: StockOutRequest,
    db: AsyncSession = Depends(get_db),
) -> StockOutResponse:
    """Remove stock (waste, spoilage, staff meals...) with a recorded reason."""
    ingredient = await _get_ingredient(db, ingredient_id)
    previous_stock = ingredient.current_stock_quantity
    unit = ingredient.unit_of_measurement

    has_enough, remaining = stock_decrement(stock_out_data.quantity)
    result = await db.execute(
        update(Ingredient)
        .where(Ingredient.id == ingredient_id, has_enough)
        .values(current_stock_quantity=remaining)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        await db.rollback()
        raise HTTPException(
            status_code=400,
            detail=(
                f"Insufficient stock. Available: {round(previous_stock, 6)} {unit}, "
                f"Requested: {stock_out_data.quantity} {unit}"
            ),
        )

    await db.commit()

    ingredient = await _get_ingredient(db, ingredient_id)
    logger.info(
        f"Stock out: {stock_out_data.quantity} {unit} of {ingredient.name} - "
        f"Reason: {stock_out_data.reason}"
    )

    return StockOutResponse(
        **IngredientResponse.model_validate(ingredient).model_dump(),
        stock_out_quantity=stock_out_data.quantity,
        stock_out_reason=stock_out_data.reason,
        previous_stock=previous_stock,
    )
