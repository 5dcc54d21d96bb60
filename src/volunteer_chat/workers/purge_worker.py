"""Purge worker: finishes conversation deletes interrupted after the first phase."""
from __future__ import annotations

import asyncio
import logging

from volunteer_chat.config import settings
from volunteer_chat.infrastructure.db.uow import sqlalchemy_uow
from volunteer_chat.services import conversation_service

logger = logging.getLogger(__name__)


async def run_purge_worker() -> None:
    logger.info(
        "Purge worker started (poll=%.1fs, batch=%d)",
        settings.PURGE_POLL_INTERVAL,
        settings.PURGE_BATCH_SIZE,
    )
    while True:
        try:
            await _process_batch()
        except Exception:
            logger.exception("Purge worker loop error")
        await asyncio.sleep(settings.PURGE_POLL_INTERVAL)


async def _process_batch() -> None:
    async with sqlalchemy_uow() as uow:
        purged = await conversation_service.purge_deleting_conversations(
            uow, limit=settings.PURGE_BATCH_SIZE,
        )
    if purged:
        logger.info("Purged %d conversations left in deleting state", purged)


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(run_purge_worker())


if __name__ == "__main__":
    main()
