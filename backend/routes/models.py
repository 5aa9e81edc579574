"""Pydantic request/response models for API endpoints."""

from typing import Literal

from pydantic import BaseModel, field_validator


class LoginBody(BaseModel):
    email: str
    password: str


class ThemeBody(BaseModel):
    theme: Literal["dark", "light"] | None = None  # None toggles


class SetupBody(BaseModel):
    setting: str
    vibe: str
    protagonist: str


class UpdateStory(BaseModel):
    title: str | None = None
    setup: SetupBody | None = None


class ChatBody(BaseModel):
    message: str

    @field_validator("message")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("message must not be blank")
        return v


class EditMessage(BaseModel):
    text: str


class UpdateMemory(BaseModel):
    text: str | None = None
    active: bool | None = None
