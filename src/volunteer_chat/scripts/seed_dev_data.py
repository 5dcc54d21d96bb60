"""Seed development data: creates a sample conversation with a few messages."""
from __future__ import annotations

import asyncio
import logging
import uuid

from volunteer_chat.application.dto.conversation import CreateConversationDTO
from volunteer_chat.application.dto.message import SendMessageDTO
from volunteer_chat.application.dto.principal import Principal
from volunteer_chat.infrastructure.db.uow import sqlalchemy_uow
from volunteer_chat.services import conversation_service, message_service

logger = logging.getLogger(__name__)

ORGANIZER = Principal(user_id="dev-organizer")
VOLUNTEER = Principal(user_id="dev-volunteer")


async def seed() -> None:
    async with sqlalchemy_uow() as uow:
        conv = await conversation_service.create_conversation(
            ORGANIZER,
            CreateConversationDTO(participant_ids=[VOLUNTEER.user_id], name="Park clean-up"),
            uow,
        )

        messages_data = [
            (ORGANIZER, VOLUNTEER, "Hi! Thanks for signing up for Saturday."),
            (VOLUNTEER, ORGANIZER, "Happy to help. Where do we meet?"),
            (ORGANIZER, VOLUNTEER, "North gate, 9am. Gloves are provided."),
            (VOLUNTEER, ORGANIZER, "See you there!"),
        ]
        for sender, receiver, content in messages_data:
            await message_service.send_message(
                SendMessageDTO(
                    conversation_id=conv.id,
                    receiver_id=receiver.user_id,
                    content=content,
                    client_msg_id=uuid.uuid4(),
                ),
                sender,
                uow,
            )

        logger.info("Seeded conversation %s with %d messages", conv.id, len(messages_data))


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
