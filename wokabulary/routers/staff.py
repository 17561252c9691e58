"""
Staff Routes

Login against the hosted auth provider plus staff administration.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wokabulary.database import get_db
from wokabulary.models import Staff, utcnow
from wokabulary.schemas import (
    ErrorResponse,
    LoginResponse,
    LoginUser,
    StaffCreate,
    StaffLogin,
    StaffResponse,
)
from wokabulary.services.auth import get_auth_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Staff"])


@router.post(
    "/api/staff/login",
    response_model=LoginResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def staff_login(
    credentials: StaffLogin,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """
    Sign a staff member in.

    The auth provider checks the password; the staff row decides whether
    the account may use the POS.
    """
    auth_service = get_auth_service()
    result = await auth_service.sign_in(credentials.email, credentials.password)

    if not result.success:
        logger.warning(f"Login failed for {credentials.email}: {result.error_message}")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    query = await db.execute(select(Staff).where(Staff.auth_id == result.user_id))
    staff = query.scalar_one_or_none()

    if not staff:
        raise HTTPException(status_code=404, detail="Staff member not found")

    if not staff.is_active:
        logger.warning(f"Deactivated account tried to log in: {staff.email}")
        raise HTTPException(status_code=401, detail="Account is deactivated")

    staff.last_login = utcnow()
    await db.commit()

    logger.info(f"Staff login: {staff.email} ({staff.role.value})")

    return LoginResponse(
        success=True,
        message="Login successful",
        user=LoginUser.model_validate(staff),
        session=result.session or None,
    )


@router.get("/api/admin/staff", response_model=List[StaffResponse])
async def list_staff(db: AsyncSession = Depends(get_db)) -> List[Staff]:
    result = await db.execute(select(Staff).order_by(Staff.created_at.desc()))
    return result.scalars().all()


@router.post(
    "/api/admin/staff",
    response_model=StaffResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
)
async def create_staff(
    staff_data: StaffCreate,
    db: AsyncSession = Depends(get_db),
) -> Staff:
    """
    Add a staff member.

    With a password the account is registered at the auth provider first;
    with an ``auth_id`` an existing provider account is linked.
    """
    existing = await db.execute(select(Staff).where(Staff.email == staff_data.email))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="Staff member with this email already exists")

    auth_id = staff_data.auth_id
    if staff_data.password:
        auth_service = get_auth_service()
        result = await auth_service.sign_up(staff_data.email, staff_data.password)
        if not result.success:
            raise HTTPException(
                status_code=400,
                detail=result.error_message or "Failed to create user account",
            )
        auth_id = result.user_id
    else:
        linked = await db.execute(select(Staff).where(Staff.auth_id == auth_id))
        if linked.scalar_one_or_none():
            raise HTTPException(status_code=409, detail="Auth account is already linked to a staff member")

    staff = Staff(
        auth_id=auth_id,
        email=staff_data.email,
        name=staff_data.name,
        phone=staff_data.phone,
        role=staff_data.role,
    )
    db.add(staff)
    await db.commit()

    logger.info(f"Staff created: {staff.email} ({staff.role.value})")
    return staff


@router.patch(
    "/api/admin/staff/{staff_id}/toggle-status",
    response_model=StaffResponse,
    responses={404: {"model": ErrorResponse}},
)
async def toggle_staff_status(
    staff_id: str,
    db: AsyncSession = Depends(get_db),
) -> Staff:
    staff = await db.get(Staff, staff_id)
    if not staff:
        raise HTTPException(status_code=404, detail="Staff member not found")

    staff.is_active = not staff.is_active
    await db.commit()

    logger.info(f"Staff {staff.email} {'activated' if staff.is_active else 'deactivated'}")
    return staff
