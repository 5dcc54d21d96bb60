from __future__ import annotations

import logging
import uuid
from typing import Iterable

from volunteer_chat.application.dto.principal import Principal
from volunteer_chat.application.uow import UnitOfWork

logger = logging.getLogger(__name__)


async def mark_read(
    message_ids: Iterable[uuid.UUID],
    principal: Principal,
    uow: UnitOfWork,
) -> int:
    """Mark messages addressed to the caller as read.

    Ids that are unknown, already read, or addressed to someone else are
    skipped, so overlapping retries are safe. The sender is not notified;
    the flag shows up on its next fetch.
    """
    ids = set(message_ids)
    if not ids:
        return 0
    updated = await uow.messages_w.mark_read(ids, principal.user_id)
    await uow.commit()
    logger.debug("%s marked %d/%d messages read", principal.user_id, updated, len(ids))
    return updated
