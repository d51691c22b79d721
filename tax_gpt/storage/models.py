"""
Data models for conversation sessions.
Uses Pydantic for validation and serialization.

The JSON layout (camelCase ``createdAt`` / ``totalTurns``) is shared with
session files written by earlier versions of the tool and must not change.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_serializer


def utc_now() -> datetime:
    """Current UTC time truncated to the millisecond precision stored on disk."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as ISO-8601 with millisecond precision and a Z suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Role(str, Enum):
    """Author of a conversation message."""

    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """A single conversation message. Never edited after it is appended."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    timestamp: datetime = Field(default_factory=utc_now)

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)


class SessionMetadata(BaseModel):
    """Session metadata."""

    model_config = ConfigDict(populate_by_name=True)

    model: str
    total_turns: int = Field(0, alias="totalTurns", ge=0)


class Session(BaseModel):
    """A named, persisted conversation."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")
    messages: list[Message] = Field(default_factory=list)
    metadata: SessionMetadata

    @field_serializer("created_at")
    def _serialize_created_at(self, value: datetime) -> str:
        return format_timestamp(value)

    def to_json(self) -> str:
        """Serialize to the on-disk JSON document."""
        return self.model_dump_json(by_alias=True, indent=2)

    @classmethod
    def from_json(cls, data: str | bytes) -> "Session":
        """Parse an on-disk JSON document."""
        return cls.model_validate_json(data)

    def to_markdown(self) -> str:
        """Render the conversation as a Markdown Q/A transcript."""
        blocks = [
            f"## {'Q' if m.role == Role.USER else 'A'}\n\n{m.content}\n"
            for m in self.messages
        ]
        return f"# {self.name}\n\n" + "\n---\n\n".join(blocks)
