"""
Shop feature routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.users.models import User
from app.features.users.dependencies import get_current_user, get_current_admin_user
from app.features.shops.models import Shop
from app.features.shops.schemas import ShopCreate, ShopResponse, ShopPublic
from app.features.shops.dependencies import get_shop_by_id
from app.utils import get_logger, slugify


log = get_logger(__name__)
router = APIRouter(tags=["shops"])


@router.post("", response_model=ShopResponse, status_code=status.HTTP_201_CREATED)
async def create_shop(
    shop_data: ShopCreate,
    admin: Annotated[User, Depends(get_current_admin_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Create a new shop (admin only)."""
    slug = shop_data.slug or slugify(shop_data.name)
    if not slug:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Shop slug must contain at least one letter or digit"
        )
    
    result = await db.execute(select(Shop).where(Shop.slug == slug))
    if result.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Shop with this slug already exists"
        )
    
    shop = Shop(
        name=shop_data.name,
        slug=slug,
        email=shop_data.email,
        owner_id=shop_data.owner_id or admin.id,
    )
    db.add(shop)
    await db.commit()
    await db.refresh(shop)
    log.info("Shop %s (%s) created by %s", shop.id, slug, admin.id)
    return ShopResponse.from_shop(shop)


@router.get("", response_model=list[ShopPublic])
async def list_shops(
    db: Annotated[AsyncSession, Depends(get_db)],
    skip: int = 0,
    limit: int = 50
):
    """List all active shops (public info only)."""
    result = await db.execute(
        select(Shop)
        .where(Shop.is_active == True)
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all()


@router.get("/{shop_id}", response_model=ShopResponse)
async def get_shop(
    shop: Annotated[Shop, Depends(get_shop_by_id)],
    current_user: Annotated[User, Depends(get_current_user)]
):
    """Get a shop with its group map."""
    return ShopResponse.from_shop(shop)
