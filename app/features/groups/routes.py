"""
Shop group API routes.

Provides endpoints for the group catalog of a shop and for group membership.
Group errors are translated to HTTP responses by the handlers in ``app.main``.
"""
from typing import Annotated, List
from fastapi import APIRouter, Depends, status

from app.features.users.dependencies import get_current_user
from app.features.users.models import User
from app.features.groups.dependencies import get_group_service, get_identity
from app.features.groups.service import GroupService, Identity
from app.features.groups.schemas import (
    GroupCreate,
    GroupUpdate,
    GroupResponse,
    AddUserToGroup,
    GroupMembersResponse,
    UserShopAccessResponse,
)


router = APIRouter()


# ============================================================================
# Group Catalog Routes
# ============================================================================

@router.post("/{shop_id}/groups", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    shop_id: str,
    group: GroupCreate,
    service: Annotated[GroupService, Depends(get_group_service)],
    identity: Annotated[Identity, Depends(get_identity)]
):
    """Create a group in a shop (shop admins only)."""
    group_id = await service.create_group(identity, group, shop_id)
    return await service.get_group(shop_id, group_id)


@router.get("/{shop_id}/groups", response_model=List[GroupResponse])
async def list_groups(
    shop_id: str,
    service: Annotated[GroupService, Depends(get_group_service)],
    current_user: Annotated[User, Depends(get_current_user)]
):
    """List the groups of a shop."""
    return await service.list_groups(shop_id)


@router.get("/{shop_id}/groups/{group_id}", response_model=GroupResponse)
async def get_group(
    shop_id: str,
    group_id: str,
    service: Annotated[GroupService, Depends(get_group_service)],
    current_user: Annotated[User, Depends(get_current_user)]
):
    """Get a specific group of a shop."""
    return await service.get_group(shop_id, group_id)


@router.put("/{shop_id}/groups/{group_id}", response_model=GroupResponse)
async def update_group(
    shop_id: str,
    group_id: str,
    group_update: GroupUpdate,
    service: Annotated[GroupService, Depends(get_group_service)],
    identity: Annotated[Identity, Depends(get_identity)]
):
    """Update a group; members' permissions follow immediately (shop admins only)."""
    await service.update_group(identity, group_id, group_update, shop_id)
    return await service.get_group(shop_id, group_id)


@router.delete("/{shop_id}/groups/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_group(
    shop_id: str,
    group_id: str,
    service: Annotated[GroupService, Depends(get_group_service)],
    identity: Annotated[Identity, Depends(get_identity)]
):
    """Delete a group and detach all of its members (shop admins only)."""
    await service.remove_group(identity, group_id, shop_id)
    return None


# ============================================================================
# Membership Routes
# ============================================================================

@router.get("/{shop_id}/groups/{group_id}/users", response_model=GroupMembersResponse)
async def list_group_members(
    shop_id: str,
    group_id: str,
    service: Annotated[GroupService, Depends(get_group_service)],
    current_user: Annotated[User, Depends(get_current_user)]
):
    """List the users belonging to a group."""
    user_ids = await service.list_members(shop_id, group_id)
    return GroupMembersResponse(shop_id=shop_id, group_id=group_id, user_ids=user_ids)


@router.post("/{shop_id}/groups/{group_id}/users", response_model=UserShopAccessResponse)
async def add_user_to_group(
    shop_id: str,
    group_id: str,
    assignment: AddUserToGroup,
    service: Annotated[GroupService, Depends(get_group_service)],
    identity: Annotated[Identity, Depends(get_identity)]
):
    """Add a user to a group (shop admins only)."""
    await service.add_user(identity, assignment.user_id, group_id, shop_id)
    return await service.get_user_access(assignment.user_id, shop_id)


@router.delete("/{shop_id}/groups/{group_id}/users/{user_id}", response_model=UserShopAccessResponse)
async def remove_user_from_group(
    shop_id: str,
    group_id: str,
    user_id: str,
    service: Annotated[GroupService, Depends(get_group_service)],
    identity: Annotated[Identity, Depends(get_identity)]
):
    """Remove a user from a group (shop admins only)."""
    await service.remove_user(identity, user_id, group_id, shop_id)
    return await service.get_user_access(user_id, shop_id)


@router.get("/{shop_id}/users/{user_id}/access", response_model=UserShopAccessResponse)
async def get_user_access(
    shop_id: str,
    user_id: str,
    service: Annotated[GroupService, Depends(get_group_service)],
    current_user: Annotated[User, Depends(get_current_user)]
):
    """Get a user's group memberships and effective permissions in a shop."""
    return await service.get_user_access(user_id, shop_id)
