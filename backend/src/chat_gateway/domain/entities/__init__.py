"""Domain entities — conversation messages and canonical output tokens.

Both are immutable once constructed.  Validation of caller-supplied
messages happens at the gateway boundary, not here, so a malformed
message can still be represented and rejected with a proper error.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from chat_gateway.domain.enums import MessageRole


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """One message of a conversation; list order is conversation order."""

    role: MessageRole | str
    content: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ChatMessage:
        role = data.get("role", "")
        try:
            role = MessageRole(role)
        except ValueError:
            pass
        return cls(role=role, content=data.get("content", ""))

    def to_dict(self) -> dict[str, str]:
        role = self.role.value if isinstance(self.role, MessageRole) else str(self.role)
        return {"role": role, "content": self.content}


@dataclass(frozen=True, slots=True)
class Token:
    """A canonical fragment of streamed output.

    ``sequence`` starts at 0 for every response and increases by one per
    token, in the order fragments arrived from the provider.
    """

    sequence: int
    text: str
