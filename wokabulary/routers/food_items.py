"""
Food Item Routes

Menu administration (items, their per-portion prices and recipes) and the
menu served to waiters.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wokabulary.database import get_db
from wokabulary.models import (
    INCOMPLETE_STATUSES,
    Category,
    FoodItem,
    FoodItemPortion,
    Ingredient,
    Order,
    OrderItem,
    Portion,
    PortionIngredient,
)
from wokabulary.schemas import (
    ErrorResponse,
    FoodItemCreate,
    FoodItemPortionInput,
    FoodItemPortionResponse,
    FoodItemResponse,
    FoodItemUpdate,
    MessageResponse,
    RecipeLineResponse,
    RecipeResponse,
    RecipeUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Food Items"])


# =============================================================================
# HELPERS
# =============================================================================

async def _get_food_item(db: AsyncSession, food_item_id: str) -> FoodItem:
    result = await db.execute(
        select(FoodItem)
        .where(FoodItem.id == food_item_id)
        .execution_options(populate_existing=True)
    )
    food_item = result.scalar_one_or_none()
    if not food_item:
        raise HTTPException(status_code=404, detail="Food item not found")
    return food_item


async def _ensure_category(db: AsyncSession, category_id: str) -> None:
    if not await db.get(Category, category_id):
        raise HTTPException(status_code=400, detail="Category not found")


async def _ensure_portions(db: AsyncSession, portions: List[FoodItemPortionInput]) -> None:
    ids = {p.portion_id for p in portions}
    result = await db.execute(select(Portion.id).where(Portion.id.in_(ids)))
    missing = ids - set(result.scalars().all())
    if missing:
        raise HTTPException(status_code=400, detail=f"Portion not found: {', '.join(sorted(missing))}")


async def _incomplete_orders(db: AsyncSession, food_item_id: str) -> list[dict]:
    result = await db.execute(
        select(Order.id, Order.table_number, Order.status)
        .join(OrderItem, OrderItem.order_id == Order.id)
        .where(
            OrderItem.food_item_id == food_item_id,
            Order.status.in_(INCOMPLETE_STATUSES),
        )
        .distinct()
        .order_by(Order.id)
    )
    return [
        {"id": row.id, "table_number": row.table_number, "status": row.status.value}
        for row in result
    ]


async def _get_food_item_portion(db: AsyncSession, food_item_id: str, portion_id: str) -> FoodItemPortion:
    result = await db.execute(
        select(FoodItemPortion)
        .options(selectinload(FoodItemPortion.ingredients))
        .where(
            FoodItemPortion.food_item_id == food_item_id,
            FoodItemPortion.portion_id == portion_id,
        )
        .execution_options(populate_existing=True)
    )
    food_item_portion = result.scalar_one_or_none()
    if not food_item_portion:
        raise HTTPException(status_code=404, detail="Food item portion not found")
    return food_item_portion


def _recipe_response(food_item_portion: FoodItemPortion) -> RecipeResponse:
    return RecipeResponse(
        food_item_id=food_item_portion.food_item_id,
        portion_id=food_item_portion.portion_id,
        ingredients=[
            RecipeLineResponse.model_validate(line)
            for line in sorted(food_item_portion.ingredients, key=lambda line: line.ingredient.name)
        ],
    )


# =============================================================================
# ADMIN
# =============================================================================

@router.get("/api/admin/food-items", response_model=List[FoodItemResponse])
async def list_food_items(db: AsyncSession = Depends(get_db)) -> List[FoodItem]:
    result = await db.execute(select(FoodItem).order_by(FoodItem.created_at.desc()))
    return result.scalars().all()


@router.post(
    "/api/admin/food-items",
    response_model=FoodItemResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_food_item(
    item_data: FoodItemCreate,
    db: AsyncSession = Depends(get_db),
) -> FoodItem:
    await _ensure_category(db, item_data.category_id)
    await _ensure_portions(db, item_data.portions)

    food_item = FoodItem(
        name=item_data.name,
        description=item_data.description,
        image_url=item_data.image_url,
        category_id=item_data.category_id,
        portions=[
            FoodItemPortion(portion_id=p.portion_id, price=p.price)
            for p in item_data.portions
        ],
    )
    db.add(food_item)
    await db.commit()

    logger.info(f"Food item created: {food_item.name} ({len(item_data.portions)} portions)")
    return await _get_food_item(db, food_item.id)


@router.put(
    "/api/admin/food-items/{food_item_id}",
    response_model=FoodItemResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_food_item(
    food_item_id: str,
    item_data: FoodItemUpdate,
    db: AsyncSession = Depends(get_db),
) -> FoodItem:
    """
    Partially update a food item.

    A ``portions`` list replaces the item's prices: listed portions are
    added or re-priced, unlisted ones are removed along with their recipes.
    An item still on an open order cannot be disabled.
    """
    food_item = await _get_food_item(db, food_item_id)
    updates = item_data.model_dump(exclude_unset=True, exclude={"portions"})

    if updates.get("category_id"):
        await _ensure_category(db, updates["category_id"])
    elif "category_id" in updates:
        raise HTTPException(status_code=400, detail="Category is required")

    if "name" in updates:
        updates["name"] = (updates["name"] or "").strip()
        if not updates["name"]:
            raise HTTPException(status_code=400, detail="Name is required")

    if updates.get("is_active") is False and food_item.is_active:
        affected_orders = await _incomplete_orders(db, food_item_id)
        if affected_orders:
            logger.warning(f"Refused to disable {food_item.name}: {len(affected_orders)} open orders")
            raise HTTPException(
                status_code=400,
                detail={
                    "error": "Cannot disable food item with incomplete orders",
                    "affected_orders": affected_orders,
                },
            )

    for key, value in updates.items():
        setattr(food_item, key, value)

    if item_data.portions is not None:
        if not item_data.portions:
            raise HTTPException(status_code=400, detail="At least one portion is required")
        await _ensure_portions(db, item_data.portions)

        prices = {p.portion_id: p.price for p in item_data.portions}
        kept = []
        for food_item_portion in food_item.portions:
            if food_item_portion.portion_id in prices:
                food_item_portion.price = prices.pop(food_item_portion.portion_id)
                kept.append(food_item_portion)
        kept.extend(
            FoodItemPortion(portion_id=portion_id, price=price)
            for portion_id, price in prices.items()
        )
        food_item.portions = kept

    await db.commit()

    logger.info(f"Food item updated: {food_item.name}")
    return await _get_food_item(db, food_item_id)


@router.delete(
    "/api/admin/food-items/{food_item_id}",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def delete_food_item(
    food_item_id: str,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    food_item = await _get_food_item(db, food_item_id)

    result = await db.execute(
        select(OrderItem.order_id)
        .where(OrderItem.food_item_id == food_item_id)
        .distinct()
        .order_by(OrderItem.order_id)
    )
    affected_orders = list(result.scalars().all())

    if affected_orders:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Cannot delete food item that has been ordered. Disable it instead.",
                "affected_orders": affected_orders,
            },
        )

    await db.delete(food_item)
    await db.commit()

    logger.info(f"Food item deleted: {food_item.name}")
    return MessageResponse(message="Food item deleted successfully")


# =============================================================================
# RECIPES
# =============================================================================

@router.get(
    "/api/admin/food-items/{food_item_id}/portions/{portion_id}/ingredients",
    response_model=RecipeResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_recipe(
    food_item_id: str,
    portion_id: str,
    db: AsyncSession = Depends(get_db),
) -> RecipeResponse:
    food_item_portion = await _get_food_item_portion(db, food_item_id, portion_id)
    return _recipe_response(food_item_portion)


@router.put(
    "/api/admin/food-items/{food_item_id}/portions/{portion_id}/ingredients",
    response_model=RecipeResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_recipe(
    food_item_id: str,
    portion_id: str,
    recipe: RecipeUpdate,
    db: AsyncSession = Depends(get_db),
) -> RecipeResponse:
    """Replace the ingredients one unit of this portion consumes."""
    food_item_portion = await _get_food_item_portion(db, food_item_id, portion_id)

    ids = {line.ingredient_id for line in recipe.ingredients}
    if ids:
        result = await db.execute(select(Ingredient.id).where(Ingredient.id.in_(ids)))
        missing = ids - set(result.scalars().all())
        if missing:
            raise HTTPException(status_code=400, detail=f"Ingredient not found: {', '.join(sorted(missing))}")

    # Old lines go first so re-listed ingredients do not collide on the unique key
    await db.execute(
        delete(PortionIngredient).where(PortionIngredient.food_item_portion_id == food_item_portion.id)
    )
    db.add_all(
        PortionIngredient(
            food_item_portion_id=food_item_portion.id,
            ingredient_id=line.ingredient_id,
            quantity=line.quantity,
        )
        for line in recipe.ingredients
    )
    await db.commit()

    logger.info(
        f"Recipe updated for food item {food_item_id} / portion {portion_id}: "
        f"{len(recipe.ingredients)} ingredients"
    )
    return _recipe_response(await _get_food_item_portion(db, food_item_id, portion_id))


# =============================================================================
# WAITER MENU
# =============================================================================

@router.get("/api/waiter/food-items", response_model=List[FoodItemResponse])
async def waiter_food_items(db: AsyncSession = Depends(get_db)) -> List[FoodItemResponse]:
    """Active items in active categories, offered only in active portions."""
    result = await db.execute(
        select(FoodItem)
        .join(Category, Category.id == FoodItem.category_id)
        .where(FoodItem.is_active.is_(True), Category.is_active.is_(True))
        .order_by(Category.name, FoodItem.name)
    )

    menu = []
    for food_item in result.scalars().all():
        portions = [p for p in food_item.portions if p.portion.is_active]
        if not portions:
            continue
        response = FoodItemResponse.model_validate(food_item)
        response.portions = [FoodItemPortionResponse.model_validate(p) for p in portions]
        menu.append(response)
    return menu
