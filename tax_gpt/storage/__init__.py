"""Storage modules for Tax GPT sessions."""

from .models import (
    Message,
    Role,
    Session,
    SessionMetadata,
)
from .session_store import SessionListing, SessionSaveError, SessionStore

__all__ = [
    "Message",
    "Role",
    "Session",
    "SessionMetadata",
    "SessionListing",
    "SessionSaveError",
    "SessionStore",
]
