"""
AI studio routes.
Gemini settings, connection test and the admin chat.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from siteadmin.config import prompts, settings
from siteadmin.context import ActorContext
from siteadmin.database import get_db, transaction
from siteadmin.dependencies import get_ai_settings_store, get_chat_store, get_current_user
from siteadmin.rate_limiter import limiter
from siteadmin.schemas import (
    AISettingsResponse,
    AISettingsUpdate,
    ChatRequest,
    ConnectionTestResponse,
)
from siteadmin.services.ai_settings import AISettings, AISettingsStore
from siteadmin.services.audit import log_action
from siteadmin.services.chat_history import ChatHistoryStore, ChatMessage
from siteadmin.services.gemini import AIDisabledError, GeminiError, generate_text, ping
from siteadmin.services.json_store import StorageError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/ai", tags=["admin-ai"])


def _settings_response(ai_settings: AISettings) -> AISettingsResponse:
    return AISettingsResponse(
        enabled=ai_settings.enabled,
        has_api_key=ai_settings.has_api_key,
        api_key_masked=ai_settings.masked_key(),
        models=ai_settings.models.model_dump(),
        temperature=ai_settings.temperature,
        max_tokens=ai_settings.max_tokens,
        updated_at=ai_settings.updated_at,
    )


def _storage_failure(e: StorageError) -> HTTPException:
    logger.error(f"AI storage failure: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Unable to persist AI data",
    )


# === Settings ===

@router.get("/settings", response_model=AISettingsResponse)
def get_settings(
    store: AISettingsStore = Depends(get_ai_settings_store),
    actor: ActorContext = Depends(get_current_user),
):
    return _settings_response(store.load())


@router.put("/settings", response_model=AISettingsResponse)
def update_settings(
    update: AISettingsUpdate,
    store: AISettingsStore = Depends(get_ai_settings_store),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_current_user),
):
    """
    Partial update. A blank api_key keeps the stored key.
    """
    try:
        saved = store.save(update.model_dump(exclude_unset=True))
    except StorageError as e:
        raise _storage_failure(e)

    with transaction(db):
        log_action(
            db,
            actor.actor_id,
            "ai.settings",
            "ai_settings",
            None,
            f"Updated AI settings (enabled={saved.enabled}, text model {saved.models.text})",
        )

    return _settings_response(saved)


@router.post("/test", response_model=ConnectionTestResponse)
@limiter.limit(settings.ai_rate_limit)
async def test_connection(
    request: Request,
    store: AISettingsStore = Depends(get_ai_settings_store),
    actor: ActorContext = Depends(get_current_user),
):
    """Send a tiny prompt to Gemini and report whether it answered."""
    try:
        await ping(store.load())
    except GeminiError as e:
        logger.warning(f"Gemini connection test failed: {e}")
        return ConnectionTestResponse(status="fail", message=str(e))

    return ConnectionTestResponse(status="pass", message="Gemini responded successfully.")


# === Chat ===

@router.get("/chat", response_model=List[ChatMessage])
def get_chat_history(
    chat: ChatHistoryStore = Depends(get_chat_store),
):
    return chat.history()


@router.post("/chat/messages", response_model=List[ChatMessage])
def append_chat_message(
    message: ChatMessage,
    chat: ChatHistoryStore = Depends(get_chat_store),
):
    """Store a message without calling the model."""
    try:
        return chat.append(message.role, message.text)
    except StorageError as e:
        raise _storage_failure(e)


@router.delete("/chat")
def clear_chat_history(
    chat: ChatHistoryStore = Depends(get_chat_store),
):
    try:
        chat.clear()
    except StorageError as e:
        raise _storage_failure(e)

    return {"message": "Chat history cleared"}


@router.post("/chat", response_model=List[ChatMessage])
@limiter.limit(settings.ai_rate_limit)
async def chat_turn(
    request: Request,
    body: ChatRequest,
    chat: ChatHistoryStore = Depends(get_chat_store),
    store: AISettingsStore = Depends(get_ai_settings_store),
):
    """
    Send a message to Gemini with the transcript so far.
    The user message is kept even when the model call fails.
    """
    ai_settings = store.load()
    if not ai_settings.is_ready:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Enable AI tools and add a Gemini API key first.",
        )

    try:
        transcript = chat.append("user", body.text)
    except StorageError as e:
        raise _storage_failure(e)

    try:
        reply = await generate_text(
            ai_settings, transcript, system=prompts.get("chat_system_prompt", "")
        )
    except AIDisabledError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except GeminiError as e:
        logger.error(f"Chat turn failed: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    try:
        return chat.append("assistant", reply)
    except StorageError as e:
        raise _storage_failure(e)
