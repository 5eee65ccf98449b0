"""
AI chat transcripts, one JSON file per user.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, ValidationError

from siteadmin.services.json_store import LockedJsonStore

logger = logging.getLogger(__name__)

# Entries kept per transcript
DEFAULT_MAX_ENTRIES = 40


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    text: str = ""
    timestamp: Optional[str] = None


def _timestamp() -> str:
    return datetime.utcnow().isoformat(timespec="seconds")


def _normalize(entries: Iterable) -> List[ChatMessage]:
    """Keep well-formed user/assistant entries, drop the rest."""
    messages = []
    for entry in entries:
        if isinstance(entry, ChatMessage):
            messages.append(entry)
            continue
        try:
            messages.append(ChatMessage.model_validate(entry))
        except ValidationError:
            logger.debug(f"Skipping malformed chat entry: {entry!r}")
    return messages


class ChatHistoryStore:
    """
    Bounded chat transcript.
    Appends keep only the most recent `max_entries` messages.
    """

    def __init__(self, path: Union[str, Path], max_entries: int = DEFAULT_MAX_ENTRIES):
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self.max_entries = max_entries
        self._store = LockedJsonStore(path, default=[])

    @classmethod
    def for_user(
        cls, base_dir: Union[str, Path], user_id: Optional[int], max_entries: int = DEFAULT_MAX_ENTRIES
    ) -> "ChatHistoryStore":
        name = f"chat_{user_id}.json" if user_id and user_id > 0 else "chat_default.json"
        return cls(Path(base_dir) / name, max_entries=max_entries)

    @property
    def path(self) -> Path:
        return self._store.path

    def _trim(self, messages: List[ChatMessage]) -> List[ChatMessage]:
        if len(messages) > self.max_entries:
            return messages[-self.max_entries:]
        return messages

    def history(self) -> List[ChatMessage]:
        return _normalize(self._store.read())

    def append(self, role: str, text: str) -> List[ChatMessage]:
        """Add one message stamped with the current time."""
        message = ChatMessage(
            role=role if role in ("user", "assistant") else "user",
            text=text,
            timestamp=_timestamp(),
        )

        def mutate(current: list) -> list:
            messages = self._trim(_normalize(current) + [message])
            return [m.model_dump() for m in messages]

        return _normalize(self._store.update(mutate))

    def replace(self, entries: Iterable) -> List[ChatMessage]:
        messages = self._trim(_normalize(entries))
        with self._store.locked():
            self._store.write([m.model_dump() for m in messages])
        return messages

    def clear(self) -> None:
        with self._store.locked():
            self._store.write([])
