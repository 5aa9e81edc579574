"""Core domain models.

The orchestrator, storage and export code all operate on these types.
Pydantic is used for validation and serialisation at every data boundary.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["user", "model"]


def new_id() -> str:
    return str(uuid.uuid4())


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class StorySetup(BaseModel):
    """Narrative premise. Edits replace the whole object."""

    model_config = ConfigDict(frozen=True)

    setting: str
    vibe: str
    protagonist: str


class Memory(BaseModel):
    """A pinned fact injected into every generation request while active."""

    id: str = Field(default_factory=new_id)
    text: str
    active: bool = True


class Message(BaseModel):
    """One turn of a story's ledger."""

    id: str = Field(default_factory=new_id)
    role: Role
    text: str
    choices: list[str] | None = None  # model messages only


class Story(BaseModel):
    """Aggregate root: setup, ledger and memory of one story."""

    id: str = Field(default_factory=new_id)
    title: str
    setup: StorySetup
    messages: list[Message] = Field(default_factory=list)
    memory: list[Memory] = Field(default_factory=list)
    created_at: str = Field(default_factory=now_iso)
    last_updated: str = Field(default_factory=now_iso)

    @property
    def current_choices(self) -> list[str]:
        """Choices of the latest model message, if it is the last message."""
        if self.messages and self.messages[-1].role == "model":
            return list(self.messages[-1].choices or [])
        return []


class StorySegment(BaseModel):
    """Normalised shape of one generation response. Never persisted."""

    content: str
    choices: list[str]


class User(BaseModel):
    id: str
    email: str
    name: str | None = None


class Turn(BaseModel):
    """One role-tagged text turn of a generation request."""

    model_config = ConfigDict(frozen=True)

    role: Role
    text: str


class GenerationRequest(BaseModel):
    contents: list[Turn]
    system_instruction: str
    response_schema: dict
    temperature: float


def derive_title(setting: str) -> str:
    """First five words of the setting followed by an ellipsis."""
    return " ".join(setting.split(" ")[:5]) + "..."
