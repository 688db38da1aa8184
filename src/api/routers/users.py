"""Account endpoints, including linking chat identities for the bots."""
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from models.user import User
from schemas.user import IdentityLinkRequest, UserResponse, UserUpdate, validate_identity
from services import user_service
from services.exceptions import IdentityAlreadyLinkedError


router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)) -> User:
    """Get the current user's info and linked chat identities."""
    return current_user


@router.patch("/me", response_model=UserResponse)
async def update_me(
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> User:
    """Update profile fields of the current user."""
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(current_user, field, value)
    await db.flush()
    await db.refresh(current_user)
    return current_user


@router.put("/me/links/{platform}", response_model=UserResponse)
async def link_identity(
    platform: Literal["telegram", "whatsapp"],
    data: IdentityLinkRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> User:
    """
    Link a Telegram user id or WhatsApp phone number to the current account.

    Messages from a linked identity are answered by the bots with this
    account's bookmarks.
    """
    try:
        external_id = validate_identity(platform, data.external_id)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        return await user_service.link_identity(db, current_user, platform, external_id)
    except IdentityAlreadyLinkedError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/me/links/{platform}", response_model=UserResponse)
async def unlink_identity(
    platform: Literal["telegram", "whatsapp"],
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> User:
    """Remove a linked chat identity from the current account."""
    return await user_service.unlink_identity(db, current_user, platform)
