"""Domain enumerations for the chat gateway."""

from __future__ import annotations

import enum


class MessageRole(str, enum.Enum):
    """Author of a single conversation message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class StreamOutcome(str, enum.Enum):
    """Terminal state of one ``chat()`` request."""

    COMPLETED = "completed"
    INTERRUPTED = "interrupted"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"
