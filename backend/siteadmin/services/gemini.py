"""
Gemini client for text generation.
Thin wrapper over the generateContent endpoint with a short timeout.
"""
import logging
from typing import List, Optional, Sequence, Union

import httpx

from siteadmin.config import settings
from siteadmin.services.ai_settings import AISettings
from siteadmin.services.chat_history import ChatMessage

logger = logging.getLogger(__name__)

GENERATE_PATH = "/models/{model}:generateContent"


class GeminiError(Exception):
    """Base error of the Gemini client."""
    pass


class AIDisabledError(GeminiError):
    """AI tools switched off or no API key configured."""
    pass


class TemporaryError(GeminiError):
    """Temporary error (timeout, 429, 5xx)."""
    pass


class PermanentError(GeminiError):
    """Permanent error (invalid request, empty response)."""
    pass


def build_contents(messages: Sequence[Union[ChatMessage, str]]) -> List[dict]:
    """Map chat messages (or bare prompts) to Gemini `contents`."""
    contents = []
    for message in messages:
        if isinstance(message, str):
            role, text = "user", message
        else:
            role = "model" if message.role == "assistant" else "user"
            text = message.text
        if text.strip():
            contents.append({"role": role, "parts": [{"text": text}]})
    return contents


def extract_text(response: dict) -> str:
    """First non-empty text part of the first candidates, or ''."""
    for candidate in response.get("candidates") or []:
        parts = (candidate.get("content") or {}).get("parts") or []
        for part in parts:
            text = part.get("text")
            if isinstance(text, str) and text.strip():
                return text.strip()

    if isinstance(response.get("text"), str):
        return response["text"].strip()

    return ""


async def generate_content(
    ai_settings: AISettings,
    contents: List[dict],
    client: Optional[httpx.AsyncClient] = None,
    system: str = "",
) -> dict:
    """
    Call generateContent with the configured text model.

    Args:
        ai_settings: Current AI settings (key, model, temperature, max tokens)
        contents: Gemini contents payload
        client: Optional shared client; a short-lived one is used otherwise
        system: Optional system instruction

    Raises:
        AIDisabledError: AI off or key missing
        TemporaryError: Timeout, connection error, 429 or 5xx
        PermanentError: Other HTTP errors or unreadable response
    """
    if not ai_settings.enabled:
        raise AIDisabledError("Enable AI tools in settings to use this feature.")
    if not ai_settings.has_api_key:
        raise AIDisabledError("Add a Gemini API key in AI settings.")
    if not contents:
        raise PermanentError("Nothing to send to Gemini")

    url = settings.gemini_api_base.rstrip("/") + GENERATE_PATH.format(
        model=ai_settings.models.text
    )
    headers = {
        "x-goog-api-key": ai_settings.api_key,
        "Content-Type": "application/json",
    }
    payload = {
        "contents": contents,
        "generationConfig": {
            "temperature": ai_settings.temperature,
            "maxOutputTokens": ai_settings.max_tokens,
        },
    }
    if system.strip():
        payload["systemInstruction"] = {"parts": [{"text": system.strip()}]}

    try:
        if client is not None:
            response = await client.post(url, headers=headers, json=payload)
        else:
            async with httpx.AsyncClient(timeout=settings.gemini_timeout) as owned:
                response = await owned.post(url, headers=headers, json=payload)

    except httpx.TimeoutException:
        raise TemporaryError(f"Timeout after {settings.gemini_timeout}s")

    except httpx.RequestError as e:
        raise TemporaryError(f"Connection error: {e}")

    if response.status_code == 429:
        raise TemporaryError("Rate limit reached")

    if response.status_code >= 500:
        raise TemporaryError(f"Server error: HTTP {response.status_code}")

    if response.status_code >= 400:
        logger.error(f"Gemini rejected request: HTTP {response.status_code} {response.text[:300]}")
        raise PermanentError(f"Request error: HTTP {response.status_code}")

    try:
        return response.json()
    except ValueError as e:
        raise PermanentError(f"Invalid JSON from Gemini: {e}")


async def generate_text(
    ai_settings: AISettings,
    messages: Sequence[Union[ChatMessage, str]],
    client: Optional[httpx.AsyncClient] = None,
    system: str = "",
) -> str:
    """Generate a reply for a prompt or a chat transcript."""
    response = await generate_content(
        ai_settings, build_contents(messages), client=client, system=system
    )
    text = extract_text(response)
    if not text:
        logger.error(f"Gemini response without text: {str(response)[:300]}")
        raise PermanentError("Empty response from Gemini")
    return text


async def ping(
    ai_settings: AISettings, client: Optional[httpx.AsyncClient] = None
) -> str:
    """Round-trip a tiny prompt; returns the reply text."""
    return await generate_text(ai_settings, ["Ping from Dakshayani AI Studio"], client=client)
