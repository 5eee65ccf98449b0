"""
AI provider settings stored as a locked JSON document.
Values are normalized on the way in and on the way out.
"""

import logging
import math
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator

from siteadmin.services.json_store import LockedJsonStore

logger = logging.getLogger(__name__)

DEFAULT_MODELS = {
    "text": "gemini-2.5-flash",
    "image": "gemini-2.5-flash-image",
    "tts": "gemini-2.5-flash-preview-tts",
}
DEFAULT_TEMPERATURE = 0.9
DEFAULT_MAX_TOKENS = 1024
MAX_TEMPERATURE = 2.0
MAX_TOKENS_LIMIT = 8192

_MODEL_CODE_JUNK = re.compile(r"[^A-Za-z0-9._\-]")


def normalize_model_code(value: Any, fallback: str) -> str:
    """Restrict to [A-Za-z0-9._-]; blank results use the fallback."""
    value = value.strip() if isinstance(value, str) else ""
    value = _MODEL_CODE_JUNK.sub("", value)
    return value or fallback


def normalize_temperature(value: Any) -> float:
    """Clamp to [0, 2], rounded to 2 decimals. Garbage becomes 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = 0.0
    if not math.isfinite(number):
        number = 0.0
    return round(max(0.0, min(MAX_TEMPERATURE, number)), 2)


def normalize_max_tokens(value: Any) -> int:
    """Clamp to [1, 8192]. Garbage becomes 1."""
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        number = 0
    return max(1, min(MAX_TOKENS_LIMIT, number))


def mask_key(value: str) -> str:
    """Show only the last 4 characters of an API key."""
    if not value:
        return ""
    if len(value) <= 4:
        return "•" * len(value)
    return "•" * (len(value) - 4) + value[-4:]


class AIModels(BaseModel):
    text: str = DEFAULT_MODELS["text"]
    image: str = DEFAULT_MODELS["image"]
    tts: str = DEFAULT_MODELS["tts"]

    @field_validator("text", "image", "tts", mode="before")
    @classmethod
    def _normalize(cls, value: Any, info: ValidationInfo) -> str:
        return normalize_model_code(value, DEFAULT_MODELS[info.field_name])


class AISettings(BaseModel):
    enabled: bool = False
    api_key: str = ""
    models: AIModels = Field(default_factory=AIModels)
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    updated_at: Optional[str] = None

    @field_validator("api_key", mode="before")
    @classmethod
    def _strip_key(cls, value: Any) -> str:
        return value.strip() if isinstance(value, str) else ""

    @field_validator("temperature", mode="before")
    @classmethod
    def _clamp_temperature(cls, value: Any) -> float:
        return normalize_temperature(value)

    @field_validator("max_tokens", mode="before")
    @classmethod
    def _clamp_max_tokens(cls, value: Any) -> int:
        return normalize_max_tokens(value)

    @field_validator("updated_at", mode="before")
    @classmethod
    def _string_or_none(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    @property
    def is_ready(self) -> bool:
        return self.enabled and self.has_api_key

    def masked_key(self) -> str:
        return mask_key(self.api_key)


class AISettingsStore:
    """AI settings document with defaults that self-heal missing fields."""

    def __init__(self, path: Union[str, Path]):
        self._store = LockedJsonStore(path, default=AISettings().model_dump())

    @property
    def path(self) -> Path:
        return self._store.path

    def _coerce(self, data: Any) -> AISettings:
        try:
            return AISettings.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Invalid AI settings in {self.path}, using defaults: {e}")
            return AISettings()

    def load(self) -> AISettings:
        return self._coerce(self._store.read())

    def save(self, changes: dict) -> AISettings:
        """
        Apply a partial update under the lock.

        Keys: enabled, api_key, text_model, image_model, tts_model,
        temperature, max_tokens. None values and a blank api_key leave the
        stored value untouched.
        """
        changes = {k: v for k, v in changes.items() if v is not None}

        def mutate(current: dict) -> dict:
            data = self._coerce(current).model_dump()

            if "enabled" in changes:
                data["enabled"] = bool(changes["enabled"])
            if str(changes.get("api_key", "")).strip():
                data["api_key"] = str(changes["api_key"]).strip()
            for kind in ("text", "image", "tts"):
                key = f"{kind}_model"
                if key in changes:
                    data["models"][kind] = normalize_model_code(
                        changes[key], data["models"][kind]
                    )
            if "temperature" in changes:
                data["temperature"] = changes["temperature"]
            if "max_tokens" in changes:
                data["max_tokens"] = changes["max_tokens"]

            data["updated_at"] = datetime.utcnow().isoformat(timespec="seconds")
            return AISettings.model_validate(data).model_dump()

        saved = self._store.update(mutate)
        logger.info("AI settings updated")
        return AISettings.model_validate(saved)
