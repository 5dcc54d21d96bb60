from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class CreateConversationDTO:
    participant_ids: list[str] = field(default_factory=list)
    name: str | None = None
    is_group: bool = False
