"""WebSocket protocol constants: event types, room names, and error codes.

Pure data module -- no imports, no logic. Safe to import from any aquachat
module without risk of circular dependencies.
"""

# ── Client -> Server event types ──────────────────────────────────────

MSG_AUTHENTICATE = "authenticate"
MSG_JOIN_ROOM = "join-room"
MSG_LEAVE_ROOM = "leave-room"
MSG_ROOM_MESSAGE = "room-message"
MSG_REACT_TO_MESSAGE = "react-to-message"
MSG_JOIN_ADVICE_QUEUE = "join-advice-queue"
MSG_LEAVE_ADVICE_QUEUE = "leave-advice-queue"
MSG_ADVICE_MESSAGE = "advice-message"
MSG_END_ADVICE_SESSION = "end-advice-session"
MSG_SUBMIT_FEEDBACK = "submit-feedback"
MSG_BLOCK_USER = "block-user"
MSG_REPORT_USER = "report-user"

# ── Server -> Client event types ──────────────────────────────────────

MSG_AUTHENTICATED = "authenticated"
MSG_ROOM_JOINED = "room-joined"
MSG_ROOM_LEFT = "room-left"
MSG_USER_JOINED_ROOM = "user-joined-room"
MSG_USER_LEFT_ROOM = "user-left-room"
MSG_MESSAGE_REACTED = "message-reacted"
MSG_QUEUED = "queued"
MSG_QUEUE_LEFT = "queue-left"
MSG_QUEUE_EXPIRED = "queue-expired"
MSG_MATCHED = "matched"
MSG_ADVICE_MESSAGE_SENT = "advice-message-sent"
MSG_SESSION_ENDED = "session-ended"
MSG_REQUEST_FEEDBACK = "request-feedback"
MSG_FEEDBACK_SUBMITTED = "feedback-submitted"
MSG_PARTNER_DISCONNECTED = "partner-disconnected"
MSG_USER_BLOCKED = "user-blocked"
MSG_USER_REPORTED = "user-reported"
MSG_ERROR = "error"

# room-message and advice-message are relayed under the same type they
# arrive with (MSG_ROOM_MESSAGE / MSG_ADVICE_MESSAGE).

# ── Fixed vocabularies ────────────────────────────────────────────────

GENERAL_ROOMS = (
    "Freshwater",
    "Saltwater",
    "Reef",
    "Community Tank",
    "Photos & Stories",
)

# Suggested in the UI only; the server accepts any topic string.
ADVICE_TOPICS = (
    "Fish",
    "Plants",
    "Water chemistry",
    "Equipment",
)

# ── Error codes (machine-readable, included in MSG_ERROR messages) ────

ERR_UNAUTHENTICATED = "UNAUTHENTICATED"
ERR_INVALID_ARGUMENT = "INVALID_ARGUMENT"
ERR_NOT_FOUND = "NOT_FOUND"
ERR_UNAUTHORIZED = "UNAUTHORIZED"
ERR_ALREADY_ENDED = "ALREADY_ENDED"
ERR_BAD_MESSAGE = "BAD_MESSAGE"
ERR_INTERNAL = "INTERNAL"
