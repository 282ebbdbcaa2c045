"""
Shop-related dependency injection functions.
"""
from typing import Annotated
from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.shops.models import Shop


async def get_shop_by_id(
    shop_id: str,
    db: Annotated[AsyncSession, Depends(get_db)]
) -> Shop:
    """
    Get shop by ID or raise 404.
    
    Args:
        shop_id: Shop ULID
        db: Database session
        
    Returns:
        Shop model
        
    Raises:
        HTTPException: 404 if shop not found
    """
    result = await db.execute(
        select(Shop).where(Shop.id == shop_id)
    )
    shop = result.scalar_one_or_none()
    
    if shop is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Shop not found"
        )
    
    return shop
