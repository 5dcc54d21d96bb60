from __future__ import annotations

from typing import Any, Protocol
from uuid import UUID


class EventSink(Protocol):
    """Receives room events produced outside a socket handler (e.g. HTTP sends)."""

    async def notify(self, room_id: UUID, event: str, data: dict[str, Any]) -> None: ...
