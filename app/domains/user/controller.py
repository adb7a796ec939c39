"""User profile, preferences, summary and account endpoints."""

import logging

from fastapi import APIRouter, Body, Depends, File, Request, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.dependencies import get_ai_service, get_current_user, get_db
from app.core.i18n import request_text
from app.core.rate_limit import ai_summary_limit, api_limit, strict_limit, upload_limit
from app.domains.ai.service import AIService
from app.domains.summary.service import SummaryService
from app.domains.user.service import UserService
from app.schemas.base import ResponseSchema
from app.schemas.user import (
    AvatarResponse,
    DeleteAccountRequest,
    ExportDataRequest,
    PreferencesUpdate,
    UpdateProfileRequest,
    UserResponse,
    UserSummaryResponse,
)
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix=f"{settings.api_prefix}/user",
    tags=["user"],
    dependencies=[Depends(get_current_user)],
)


def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


@router.get("/profile", response_model=ResponseSchema)
@api_limit
async def get_profile(
    request: Request,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    profile = await service.get_profile(current_user)
    return ResponseSchema(
        message=request_text(request, "user.profile_retrieved"),
        data=profile.to_response(),
    )


@router.patch("/profile", response_model=ResponseSchema)
@api_limit
async def update_profile(
    request: Request,
    body: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    user = await service.update_profile(current_user, body)
    return ResponseSchema(
        message=request_text(request, "user.profile_updated"),
        data={"user": UserResponse.model_validate(user).to_response()},
    )


@router.post("/profile/avatar", response_model=ResponseSchema)
@upload_limit
async def upload_avatar(
    request: Request,
    avatar: UploadFile = File(..., description="JPEG, PNG or GIF image"),
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    path = await service.save_avatar(current_user, avatar)
    return ResponseSchema(
        message=request_text(request, "user.avatar_updated"),
        data=AvatarResponse(avatar=path).to_response(),
    )


@router.delete("/profile/avatar", response_model=ResponseSchema)
@api_limit
async def delete_avatar(
    request: Request,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    await service.remove_avatar(current_user)
    return ResponseSchema(message=request_text(request, "user.avatar_removed"))


@router.patch("/preferences", response_model=ResponseSchema)
@api_limit
async def update_preferences(
    request: Request,
    body: PreferencesUpdate,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    preferences = await service.update_preferences(current_user, body)
    return ResponseSchema(
        message=request_text(request, "user.preferences_updated"),
        data={"preferences": preferences},
    )


@router.get("/summary", response_model=ResponseSchema)
@api_limit
async def get_summary(
    request: Request,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Summary with ``content`` in the user's language, or ``summary: null``."""
    summary = await service.get_localized_summary(current_user)
    key = "user.summary_retrieved" if summary else "user.summary_none"
    return ResponseSchema(message=request_text(request, key), data={"summary": summary})


@router.post("/summary/generate", response_model=ResponseSchema)
@ai_summary_limit
async def generate_summary(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ai_service: AIService = Depends(get_ai_service),
):
    summary = await SummaryService(db, ai_service).generate(current_user)
    return ResponseSchema(
        message=request_text(request, "user.summary_generated"),
        data={"summary": UserSummaryResponse.model_validate(summary).to_response()},
    )


@router.get("/statistics", response_model=ResponseSchema)
@api_limit
async def get_statistics(
    request: Request,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    statistics = await service.get_statistics(current_user)
    return ResponseSchema(
        message=request_text(request, "user.statistics_retrieved"),
        data={"statistics": statistics},
    )


@router.delete("/account", response_model=ResponseSchema)
@strict_limit
async def delete_account(
    request: Request,
    body: DeleteAccountRequest | None = Body(None),
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Soft delete the account; local accounts confirm with their password."""
    await service.delete_account(current_user, body.password if body else None)
    request.session.clear()
    return ResponseSchema(message=request_text(request, "user.account_deleted"))


@router.post("/export-data")
@api_limit
async def export_data(
    request: Request,
    body: ExportDataRequest | None = Body(None),
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    document = await service.export_data(current_user, body.format if body else "json")
    return Response(
        content=document.content,
        media_type=document.media_type,
        headers={"Content-Disposition": document.content_disposition},
    )
