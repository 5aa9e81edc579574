"""App configuration: generation backend connection and mock-login delay.

get_config() (on Storage) returns defaults merged with the stored config.json.
Updates are partial: the "llm" section is merged key by key, scalars are
overwritten, unknown keys are ignored.

Environment variables (loaded from .env by python-dotenv) fill in what the
stored config leaves blank, without being written back:

    API_KEY            generation service key, used when llm.api_key is empty
    LLM_PROVIDER_URL   overrides llm.provider_url
    LLM_MODEL          overrides llm.model
    LLM_FORMAT         overrides llm.provider_format ("gemini" | "openai" | "echo")
"""

from __future__ import annotations

import copy
import os
from typing import Any

from coauthor.llm import LLM, EchoLLM, HttpLLM

_CONFIG_DEFAULTS: dict[str, Any] = {
    "llm": {
        "provider_format": "gemini",
        "provider_url": "https://generativelanguage.googleapis.com",
        "model": "gemini-3-pro-preview",
        "api_key": "",
        "temperature": 0.85,
        "timeout": 120,
    },
    "login_delay": 0.6,
}


def merge_config(stored: dict[str, Any]) -> dict[str, Any]:
    """Defaults with stored values applied on top."""
    return update_config_dict(copy.deepcopy(_CONFIG_DEFAULTS), stored)


def update_config_dict(config: dict[str, Any], fields: dict[str, Any]) -> dict[str, Any]:
    if isinstance(fields.get("llm"), dict):
        for key, value in fields["llm"].items():
            if key in config["llm"]:
                config["llm"][key] = value
    if "login_delay" in fields:
        config["login_delay"] = fields["login_delay"]
    return config


def llm_settings(config: dict[str, Any]) -> dict[str, Any]:
    """The llm section with environment overrides applied."""
    settings = dict(config["llm"])
    if not settings.get("api_key"):
        settings["api_key"] = os.getenv("API_KEY", "")
    settings["provider_url"] = os.getenv("LLM_PROVIDER_URL", settings["provider_url"])
    settings["model"] = os.getenv("LLM_MODEL", settings["model"])
    settings["provider_format"] = os.getenv("LLM_FORMAT", settings["provider_format"])
    return settings


def build_llm(config: dict[str, Any]) -> LLM:
    settings = llm_settings(config)
    if settings["provider_format"] == "echo":
        return EchoLLM()
    return HttpLLM(
        provider_url=settings["provider_url"],
        api_key=settings["api_key"],
        provider_format=settings["provider_format"],
        model=settings["model"],
        timeout=float(settings["timeout"]),
    )
