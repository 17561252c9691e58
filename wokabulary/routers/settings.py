"""
Settings Routes

Restaurant-wide preferences stored in a single row.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wokabulary.database import get_db
from wokabulary.models import RestaurantSettings
from wokabulary.schemas import SettingsResponse, SettingsUpdate
from wokabulary.services.billing import get_restaurant_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Settings"])


@router.get("/api/settings", response_model=SettingsResponse)
async def public_settings(db: AsyncSession = Depends(get_db)) -> RestaurantSettings:
    """Theme and service charge for every screen."""
    return await get_restaurant_settings(db)


@router.get("/api/admin/settings", response_model=SettingsResponse)
async def admin_settings(db: AsyncSession = Depends(get_db)) -> RestaurantSettings:
    return await get_restaurant_settings(db)


@router.put("/api/admin/settings", response_model=SettingsResponse)
async def update_settings(
    settings_data: SettingsUpdate,
    db: AsyncSession = Depends(get_db),
) -> RestaurantSettings:
    row = await get_restaurant_settings(db)

    for key, value in settings_data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(row, key, value)
    await db.commit()

    logger.info(f"Settings updated: theme={row.theme.value}, service_charge_rate={row.service_charge_rate}")
    return row
