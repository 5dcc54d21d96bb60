from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    code = "error"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    code = "not_found"


class ForbiddenError(AppError):
    code = "forbidden"


class ValidationError(AppError):
    code = "invalid"


class AuthenticationFailure(AppError):
    """Credential missing, malformed, expired or signed with the wrong key."""

    code = "authentication_failed"


class PersistenceFailure(AppError):
    """The message store could not complete the operation."""

    code = "persistence_failure"


class ConversationNotFound(NotFoundError):
    code = "conversation_not_found"


class MessageNotFound(NotFoundError):
    code = "message_not_found"


class InvalidParticipants(ValidationError):
    code = "invalid_participants"


class EmptyContent(ValidationError):
    code = "empty_content"


class ContentTooLong(ValidationError):
    code = "content_too_long"
