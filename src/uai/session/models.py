"""
Pydantic models for persisted sessions.

Field names on disk are camelCase (``projectPath``, ``startTime``...) so that
session files stay compatible with records written by other UAI front ends.
"""

import uuid
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["user", "assistant", "system"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Message(BaseModel):
    """One turn within a session."""

    role: Role
    content: str
    timestamp: datetime = Field(default_factory=utcnow)


class Session(BaseModel):
    """A single recorded exchange with one provider."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    tool: str
    project_path: str = Field(alias="projectPath")
    start_time: datetime = Field(default_factory=utcnow, alias="startTime")
    end_time: Optional[datetime] = Field(default=None, alias="endTime")
    messages: list[Message] = Field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    def add_message(self, role: Role, content: str) -> Message:
        """Append a message stamped with the current time."""
        message = Message(role=role, content=content)
        self.messages.append(message)
        return message

    def to_json(self) -> str:
        """Serialize with on-disk field names; ``endTime`` is omitted while open."""
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)

    @classmethod
    def from_json(cls, data: str) -> "Session":
        return cls.model_validate_json(data)
