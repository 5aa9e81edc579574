"""Process-lifetime session: logged-in user, theme, and the user's stories.

Lifecycle:
  start()   restore the saved user (and their stories) and theme
  login()   mock-authenticate, persist the session, load stories
  logout()  clear the saved session and drop all user state

The orchestrator is rebuilt per user; its on_change hook writes the whole
story collection back through Storage.save_stories().
"""

from __future__ import annotations

import logging

from coauthor.gateway import StoryGateway
from coauthor.models import User
from coauthor.orchestrator import StoryOrchestrator
from coauthor.storage import DEFAULT_THEME, Storage

logger = logging.getLogger(__name__)

THEMES = ("dark", "light")


class AppSession:
    def __init__(self, storage: Storage, gateway: StoryGateway) -> None:
        self._storage = storage
        self._gateway = gateway
        self.user: User | None = None
        self.theme: str = DEFAULT_THEME
        self.orchestrator: StoryOrchestrator | None = None

    def start(self) -> None:
        self.theme = self._storage.get_theme()
        user = self._storage.load_session()
        if user is not None:
            self._open(user)

    async def login(self, email: str, password: str) -> User:
        user = await self._storage.authenticate(email, password)
        self._storage.save_session(user)
        self._open(user)
        logger.info("Logged in user=%s", user.email)
        return user

    def logout(self) -> None:
        self._storage.clear_session()
        self.user = None
        self.orchestrator = None

    def toggle_theme(self) -> str:
        return self.set_theme("light" if self.theme == "dark" else "dark")

    def set_theme(self, theme: str) -> str:
        if theme not in THEMES:
            raise ValueError(f"Unknown theme: {theme!r}")
        self.theme = theme
        self._storage.save_theme(theme)
        return theme

    def _open(self, user: User) -> None:
        self.user = user
        self.orchestrator = StoryOrchestrator(
            self._gateway,
            stories=self._storage.load_stories(user.id),
            on_change=lambda stories: self._storage.save_stories(user.id, stories),
        )
