"""Chat API controller with FastAPI endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.dependencies import get_ai_service, get_current_user, get_db, get_event_broker
from app.core.events import ChatEventBroker
from app.core.i18n import request_text
from app.core.rate_limit import api_limit, chat_limit
from app.domains.ai.service import AIService
from app.domains.chat.service import ChatService
from app.schemas.base import ResponseSchema
from app.schemas.chat import (
    ChatDetailResponse,
    ChatHistoryResponse,
    ChatPreviewResponse,
    ChatResponse,
    CreateChatRequest,
    EditMessageRequest,
    EditMessageResponse,
    FeedbackRequest,
    MessageResponse,
    RenameChatRequest,
    SendMessageRequest,
    SendMessageResponse,
    UpdateChatRequest,
)
from app.shared.pagination import PaginationParams
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix=f"{settings.api_prefix}/chat",
    tags=["chat"],
    dependencies=[Depends(get_current_user)],
)


def get_chat_service(
    db: AsyncSession = Depends(get_db),
    ai_service: AIService = Depends(get_ai_service),
    broker: ChatEventBroker = Depends(get_event_broker),
) -> ChatService:
    return ChatService(db, ai_service=ai_service, broker=broker)


@router.post("/message", response_model=ResponseSchema, status_code=201)
@chat_limit
async def send_message(
    request: Request,
    chat_request: SendMessageRequest = Body(...),
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """Send a message to the assistant, creating the chat when no ``chatId`` is given."""
    chat, user_message, assistant_message = await service.send_message(current_user, chat_request)
    return ResponseSchema(
        message=request_text(request, "chat.message_sent"),
        data=SendMessageResponse(
            chat_id=chat.id,
            user_message=MessageResponse.model_validate(user_message),
            message=MessageResponse.model_validate(assistant_message),
        ).to_response(),
    )


@router.post("/message/{message_id}/feedback", response_model=ResponseSchema)
@api_limit
async def message_feedback(
    request: Request,
    body: FeedbackRequest,
    message_id: UUID = Path(..., description="Assistant message ID"),
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    message = await service.set_feedback(current_user, message_id, body.feedback)
    return ResponseSchema(
        message=request_text(request, "chat.feedback_saved"),
        data={
            "message": MessageResponse.model_validate(message).to_response(),
            "feedback": message.feedback.value if message.feedback else None,
        },
    )


@router.patch("/message/{message_id}/edit", response_model=ResponseSchema)
@chat_limit
async def edit_message(
    request: Request,
    body: EditMessageRequest,
    message_id: UUID = Path(..., description="User message ID"),
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """Edit a user message; later messages are discarded and a new reply is generated."""
    edited, new_message = await service.edit_message(current_user, message_id, body.content)
    return ResponseSchema(
        message=request_text(request, "chat.message_edited"),
        data=EditMessageResponse(
            edited_message=MessageResponse.model_validate(edited),
            new_message=MessageResponse.model_validate(new_message),
        ).to_response(),
    )


@router.post("/message/{message_id}/regenerate", response_model=ResponseSchema)
@chat_limit
async def regenerate_message(
    request: Request,
    message_id: UUID = Path(..., description="Assistant message ID"),
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    message = await service.regenerate_message(current_user, message_id)
    return ResponseSchema(
        message=request_text(request, "chat.message_regenerated"),
        data={"message": MessageResponse.model_validate(message).to_response()},
    )


@router.post("/chat", response_model=ResponseSchema)
@api_limit
async def create_or_get_chat(
    request: Request,
    body: CreateChatRequest | None = Body(None),
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    chat, messages = await service.create_or_get_chat(current_user, body or CreateChatRequest())
    return ResponseSchema(
        message=request_text(request, "chat.retrieved" if body and body.chat_id else "chat.created"),
        data={"chat": ChatDetailResponse.build(chat, messages).to_response()},
    )


@router.get("/history", response_model=ResponseSchema)
@api_limit
async def chat_history(
    request: Request,
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Page size"),
    archived: bool = Query(False, description="List archived chats instead of active ones"),
    search: str | None = Query(None, max_length=100, description="Match title or summary"),
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    result = await service.list_chats(
        current_user.id,
        PaginationParams(page=page, limit=limit),
        archived=archived,
        search=search.strip() if search else None,
    )
    previews = [
        ChatPreviewResponse.build(chat, result["last_messages"].get(chat.id))
        for chat in result["items"]
    ]
    return ResponseSchema(
        message=request_text(request, "chat.history_retrieved"),
        data=ChatHistoryResponse(
            chats=previews,
            total=result["total"],
            page=result["page"],
            limit=result["limit"],
            total_pages=result["total_pages"],
        ).to_response(),
    )


@router.get("/chat/{chat_id}", response_model=ResponseSchema)
@api_limit
async def get_chat(
    request: Request,
    chat_id: UUID = Path(..., description="Chat ID"),
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    chat, messages = await service.get_chat_detail(current_user.id, chat_id)
    return ResponseSchema(
        message=request_text(request, "chat.retrieved"),
        data={"chat": ChatDetailResponse.build(chat, messages).to_response()},
    )


@router.patch("/chat/{chat_id}", response_model=ResponseSchema)
@api_limit
async def update_chat(
    request: Request,
    body: UpdateChatRequest,
    chat_id: UUID = Path(..., description="Chat ID"),
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    chat = await service.update_chat(current_user.id, chat_id, body)
    return ResponseSchema(
        message=request_text(request, "chat.updated"),
        data={"chat": ChatResponse.model_validate(chat).to_response()},
    )


@router.patch("/chat/{chat_id}/archive", response_model=ResponseSchema)
@api_limit
async def toggle_archive(
    request: Request,
    chat_id: UUID = Path(..., description="Chat ID"),
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    chat = await service.toggle_archive(current_user.id, chat_id)
    return ResponseSchema(
        message=request_text(request, "chat.archived" if chat.is_archived else "chat.unarchived"),
        data={"chat": ChatResponse.model_validate(chat).to_response()},
    )


@router.patch("/chat/{chat_id}/rename", response_model=ResponseSchema)
@api_limit
async def rename_chat(
    request: Request,
    body: RenameChatRequest,
    chat_id: UUID = Path(..., description="Chat ID"),
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    chat = await service.rename_chat(current_user.id, chat_id, body.title)
    return ResponseSchema(
        message=request_text(request, "chat.renamed"),
        data={"chat": ChatResponse.model_validate(chat).to_response()},
    )


@router.delete("/chat/{chat_id}", response_model=ResponseSchema)
@api_limit
async def delete_chat(
    request: Request,
    chat_id: UUID = Path(..., description="Chat ID"),
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    await service.delete_chat(current_user.id, chat_id)
    return ResponseSchema(message=request_text(request, "chat.deleted"))


@router.get("/chat/{chat_id}/export")
@api_limit
async def export_chat(
    request: Request,
    chat_id: UUID = Path(..., description="Chat ID"),
    format: str = Query("json", description="json, txt or md"),
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """Download the chat as an attachment."""
    document = await service.export(current_user.id, chat_id, format)
    return Response(
        content=document.content,
        media_type=document.media_type,
        headers={"Content-Disposition": document.content_disposition},
    )


@router.get("/models", response_model=ResponseSchema)
async def list_models(ai_service: AIService = Depends(get_ai_service)):
    return ResponseSchema(data={"models": ai_service.get_available_models()})


@router.get("/health", response_model=ResponseSchema)
async def ai_health(ai_service: AIService = Depends(get_ai_service)):
    health = await ai_service.health_check()
    return ResponseSchema(data={"services": health.providers, "timestamp": health.timestamp})
