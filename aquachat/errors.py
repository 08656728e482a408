"""Typed errors raised by the chat core.

Each error carries a human-readable ``message`` (shown verbatim by the client
UI) and a machine-readable ``code`` from ws_constants. The dispatcher turns
any ChatError into a single MSG_ERROR payload for the originating connection.
"""

from .ws_constants import (
    MSG_ERROR,
    ERR_UNAUTHENTICATED,
    ERR_INVALID_ARGUMENT,
    ERR_NOT_FOUND,
    ERR_UNAUTHORIZED,
    ERR_ALREADY_ENDED,
)


class ChatError(Exception):
    code = "ERROR"
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict:
        return {"type": MSG_ERROR, "message": self.message, "code": self.code}


class Unauthenticated(ChatError):
    code = ERR_UNAUTHENTICATED
    default_message = "Not authenticated"


class InvalidArgument(ChatError):
    code = ERR_INVALID_ARGUMENT
    default_message = "Invalid argument"


class NotFound(ChatError):
    code = ERR_NOT_FOUND
    default_message = "Session not found"


class Unauthorized(ChatError):
    code = ERR_UNAUTHORIZED
    default_message = "Not authorized"


class AlreadyEnded(ChatError):
    code = ERR_ALREADY_ENDED
    default_message = "Session has ended"
