"""
Pydantic schemas for shop groups.

Request and response models for the group catalog, memberships, and a
user's effective permissions within a shop.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator


def dedupe_permissions(permissions: List[str]) -> List[str]:
    """Drop repeated permission strings, keeping first-occurrence order."""
    return list(dict.fromkeys(permissions))


# ============================================================================
# Group Schemas
# ============================================================================

class GroupBase(BaseModel):
    """Base group schema."""
    name: str = Field(..., min_length=1, max_length=100, description="Group display name")
    description: Optional[str] = Field(None, max_length=1000, description="Group description")
    permissions: List[str] = Field(default_factory=list, description="Permission strings granted to members")
    
    @field_validator('name')
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        """Reject names made only of whitespace."""
        v = v.strip()
        if not v:
            raise ValueError('Group name must not be empty')
        return v
    
    @field_validator('permissions')
    @classmethod
    def unique_permissions(cls, v: List[str]) -> List[str]:
        return dedupe_permissions(v)


class GroupCreate(GroupBase):
    """Schema for creating a new group."""
    pass


class GroupUpdate(BaseModel):
    """
    Schema for updating a group.
    
    Omitted fields keep their stored value; ``permissions`` replaces the
    stored list wholesale.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    permissions: Optional[List[str]] = None
    
    @field_validator('name')
    @classmethod
    def name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError('Group name must not be empty')
        return v
    
    @field_validator('permissions')
    @classmethod
    def unique_permissions(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        return dedupe_permissions(v)


class GroupResponse(BaseModel):
    """Schema for group response."""
    id: str
    shop_id: str
    name: str
    slug: str
    description: Optional[str] = None
    permissions: List[str] = []
    created_at: datetime
    updated_at: datetime
    
    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# Membership Schemas
# ============================================================================

class AddUserToGroup(BaseModel):
    """Schema for adding a user to a group."""
    user_id: str = Field(..., min_length=1, description="User ID")


class GroupMembersResponse(BaseModel):
    """Users currently holding a group in a shop."""
    shop_id: str
    group_id: str
    user_ids: List[str] = []


class UserShopAccessResponse(BaseModel):
    """A user's memberships and effective permissions within one shop."""
    user_id: str
    shop_id: str
    groups: List[str] = []
    permissions: List[str] = []
    
    model_config = ConfigDict(from_attributes=True)
