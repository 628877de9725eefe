"""Memory engine errors."""


class MemoryEngineError(Exception):
    """Base class for memory engine errors."""


class PersistenceFailure(MemoryEngineError):
    """The durable key/value backend is unavailable or returned an error."""


class InvalidInput(MemoryEngineError):
    """Conversation id or turn data is missing or malformed."""


def require_conversation_id(conversation_id) -> str:
    """Normalise a conversation id, raising InvalidInput when absent."""
    if conversation_id is None:
        raise InvalidInput("conversation id is required")
    normalized = str(conversation_id).strip()
    if not normalized:
        raise InvalidInput("conversation id is empty")
    return normalized
