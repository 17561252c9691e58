"""
Customer Routes
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wokabulary.database import get_db
from wokabulary.models import Customer
from wokabulary.schemas import CustomerCreate, CustomerResponse, ErrorResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/customers", tags=["Customers"])


@router.post(
    "",
    response_model=CustomerResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
)
async def create_customer(
    customer_data: CustomerCreate,
    db: AsyncSession = Depends(get_db),
) -> Customer:
    existing = await db.execute(select(Customer).where(Customer.phone == customer_data.phone))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="Customer with this phone number already exists")

    customer = Customer(
        name=customer_data.name,
        phone=customer_data.phone,
        email=customer_data.email,
    )
    db.add(customer)
    await db.commit()

    logger.info(f"Customer created: {customer.name} ({customer.phone})")
    return customer


@router.get("/search", response_model=Optional[CustomerResponse])
async def search_customer(
    phone: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
) -> Optional[Customer]:
    """Exact phone lookup used by the cashier screen; ``null`` when unknown."""
    result = await db.execute(select(Customer).where(Customer.phone == phone.strip()))
    return result.scalar_one_or_none()
