"""
Pydantic schemas for shop-related requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, Field, EmailStr


class ShopCreate(BaseModel):
    """Schema for creating a new shop."""
    name: str = Field(..., min_length=1, max_length=255)
    slug: str | None = Field(None, max_length=255, description="Defaults to a slug of the name")
    email: EmailStr | None = None
    owner_id: str | None = Field(None, description="User who owns the shop; defaults to the creator")


class ShopGroupSummary(BaseModel):
    """A group as embedded in its shop's group map."""
    name: str
    slug: str
    permissions: list[str] = []


class ShopPublic(BaseModel):
    """Public shop information."""
    id: str
    name: str
    slug: str
    
    model_config = {"from_attributes": True}


class ShopResponse(ShopPublic):
    """Schema for shop responses, including the group map keyed by group id."""
    email: str | None = None
    owner_id: str | None = None
    is_active: bool
    group_revision: int
    group: dict[str, ShopGroupSummary] = {}
    created_at: datetime
    updated_at: datetime
    
    @classmethod
    def from_shop(cls, shop) -> "ShopResponse":
        response = cls.model_validate(shop)
        response.group = {
            g.id: ShopGroupSummary(name=g.name, slug=g.slug, permissions=list(g.permissions))
            for g in shop.groups
        }
        return response
    
    model_config = {"from_attributes": True}
