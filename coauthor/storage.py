"""JSON file storage.

All state is stored in flat JSON files under a configurable base directory.
There is no database or ORM — reads and writes go through plain helper
methods that load and dump JSON.

Directory layout:

    {base}/
      session.json                          ← logged-in user + theme
      config.json                           ← app settings (see coauthor.config)
      stories/
        coauthor_stories_{user_id}.json     ← whole story collection of one user

Login is a mock: any non-empty email/password pair succeeds after a short
simulated delay, and the user id is derived from the email.
"""

from __future__ import annotations

import asyncio
import base64
import json
from pathlib import Path
from typing import Any

from coauthor.config import merge_config, update_config_dict
from coauthor.models import Story, User

STORIES_PREFIX = "coauthor_stories_"
DEFAULT_THEME = "dark"


class AuthError(ValueError):
    """Raised when login is attempted with a blank email or password."""


class Storage:
    def __init__(self, base_path: Path, login_delay: float = 0.6) -> None:
        self._base = base_path
        self.login_delay = login_delay
        self._stories_root = base_path / "stories"
        self._stories_root.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Internal path helpers
    # ------------------------------------------------------------------

    def _session_file(self) -> Path:
        return self._base / "session.json"

    def _config_file(self) -> Path:
        return self._base / "config.json"

    def _stories_file(self, user_id: str) -> Path:
        return self._stories_root / f"{STORIES_PREFIX}{user_id}.json"

    def _read_json(self, path: Path) -> Any:
        return json.loads(path.read_text())

    def _write_json(self, path: Path, data: Any) -> None:
        path.write_text(json.dumps(data, indent=2))

    def _read_session(self) -> dict[str, Any]:
        path = self._session_file()
        if not path.is_file():
            return {}
        return self._read_json(path)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def authenticate(self, email: str, password: str) -> User:
        """Mock login. No credential check beyond non-empty values."""
        await asyncio.sleep(self.login_delay)
        if not email.strip() or not password:
            raise AuthError("Email and password are required")
        user_id = base64.urlsafe_b64encode(email.encode()).decode()
        return User(id=user_id, email=email, name=email.split("@")[0])

    def load_session(self) -> User | None:
        user = self._read_session().get("user")
        if not user:
            return None
        return User.model_validate(user)

    def save_session(self, user: User) -> None:
        session = self._read_session()
        session["user"] = user.model_dump()
        self._write_json(self._session_file(), session)

    def clear_session(self) -> None:
        session = self._read_session()
        session.pop("user", None)
        self._write_json(self._session_file(), session)

    def get_theme(self) -> str:
        return self._read_session().get("theme", DEFAULT_THEME)

    def save_theme(self, theme: str) -> None:
        session = self._read_session()
        session["theme"] = theme
        self._write_json(self._session_file(), session)

    # ------------------------------------------------------------------
    # Stories (whole-collection overwrite per user)
    # ------------------------------------------------------------------

    def load_stories(self, user_id: str) -> list[Story]:
        path = self._stories_file(user_id)
        if not path.exists():
            return []
        return [Story.model_validate(s) for s in self._read_json(path)]

    def save_stories(self, user_id: str, stories: list[Story]) -> None:
        self._write_json(
            self._stories_file(user_id),
            [s.model_dump() for s in stories],
        )

    # ------------------------------------------------------------------
    # Config
    # ------------------------------------------------------------------

    def get_config(self) -> dict[str, Any]:
        """Read config, returning defaults merged with stored values."""
        path = self._config_file()
        stored = self._read_json(path) if path.is_file() else {}
        return merge_config(stored)

    def update_config(self, fields: dict[str, Any]) -> dict[str, Any]:
        """Merge fields into config and persist. Returns full config."""
        config = update_config_dict(self.get_config(), fields)
        self._write_json(self._config_file(), config)
        return config
