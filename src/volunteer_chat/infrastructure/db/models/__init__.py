"""Import all models so Base.metadata knows every table."""
from volunteer_chat.infrastructure.db.models.conversation import ConversationModel
from volunteer_chat.infrastructure.db.models.message import MessageModel
from volunteer_chat.infrastructure.db.models.participant import ParticipantModel

__all__ = [
    "ConversationModel",
    "MessageModel",
    "ParticipantModel",
]
