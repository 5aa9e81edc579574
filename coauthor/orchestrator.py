"""Story orchestrator: the state machine owning a user's stories.

Per story the state is Idle or Generating. Every action that talks to the
model follows the same two-phase shape:

  1. apply the optimistic mutation (and keep the previous ledger when a
     rollback may be needed),
  2. await the gateway (the only suspension point),
  3. append the reply, or restore the recorded state.

Rollback policy by action:

  create_story      failed opening → the provisional story is removed
  submit_user_turn  failed reply   → user text stays, degraded reply appended
  regenerate        failed reply   → ledger restored to the pre-call snapshot

At most one generation runs per story. A second request for the same story
is rejected (returns None), never queued. Different stories generate
independently. Edits are applied immediately in any state; a reply that
arrives later is appended to the ledger as it stands at that moment.

Each persisted mutation replaces the Story object keyed by id, refreshes
last_updated and hands the whole collection to on_change.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from coauthor.gateway import StoryGateway
from coauthor.ledger import Ledger
from coauthor.memory import MemoryStore
from coauthor.models import (
    Memory,
    Message,
    Story,
    StorySegment,
    StorySetup,
    derive_title,
    now_iso,
)
from coauthor.prompts import compile_prompt

logger = logging.getLogger(__name__)

OnChange = Callable[[list[Story]], None]


class StoryOrchestrator:
    def __init__(
        self,
        gateway: StoryGateway,
        stories: Iterable[Story] = (),
        on_change: OnChange | None = None,
    ) -> None:
        self._gateway = gateway
        self._stories: list[Story] = list(stories)
        self._on_change = on_change
        self._generating: set[str] = set()
        self.current_story_id: str | None = None

    # ------------------------------------------------------------------
    # Collection access
    # ------------------------------------------------------------------

    @property
    def stories(self) -> list[Story]:
        return list(self._stories)

    def get_story(self, story_id: str) -> Story | None:
        for s in self._stories:
            if s.id == story_id:
                return s
        return None

    @property
    def current_story(self) -> Story | None:
        if self.current_story_id is None:
            return None
        return self.get_story(self.current_story_id)

    def focus(self, story_id: str | None) -> Story | None:
        """Bring a story into focus. Unknown ids clear the focus."""
        story = self.get_story(story_id) if story_id else None
        self.current_story_id = story.id if story else None
        return story

    def is_generating(self, story_id: str | None = None) -> bool:
        sid = story_id or self.current_story_id
        return sid is not None and sid in self._generating

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def create_story(self, setup: StorySetup) -> Story | None:
        """Start a story. Returns None if the opening segment failed."""
        story = Story(title=derive_title(setup.setting), setup=setup)
        self._stories.insert(0, story)
        self.current_story_id = story.id
        self._generating.add(story.id)
        self._persist()
        logger.info("Creating story id=%s title=%r", story.id, story.title)

        try:
            result = await self._gateway.generate(
                compile_prompt(setup, [], []), stage="opening"
            )
        except BaseException:
            self._discard(story.id)
            raise
        finally:
            self._generating.discard(story.id)

        if not result.ok:
            logger.info("Opening failed, discarding story id=%s", story.id)
            self._discard(story.id)
            return None

        return self._commit(story.id, messages=[_model_message(result.segment)])

    async def submit_user_turn(
        self, text: str, story_id: str | None = None
    ) -> Message | None:
        """Append the user's turn and the model's reply.

        Returns the model message, or None if there is no story, the story
        is already generating or the text is blank.
        """
        story = self._resolve(story_id)
        if story is None or story.id in self._generating or not text.strip():
            logger.debug("Turn rejected story=%s", story_id or self.current_story_id)
            return None

        ledger = Ledger(story.messages)
        contents = compile_prompt(
            story.setup,
            ledger.history(),
            MemoryStore(story.memory).active_subset(),
            text,
        )
        ledger.append(Message(role="user", text=text))
        self._commit(story.id, messages=ledger.messages)

        self._generating.add(story.id)
        try:
            result = await self._gateway.generate(contents, stage="continue")
        finally:
            self._generating.discard(story.id)

        # A failed reply still lands as the degraded segment; the user's text stays.
        reply = _model_message(result.segment)
        self._append(story.id, reply)
        return reply

    async def regenerate(
        self, message_id: str, story_id: str | None = None
    ) -> Message | None:
        """Rewind to just before message_id and request a fresh continuation.

        Returns the new model message, or None if the request was rejected
        or generation failed (the ledger is then restored exactly).
        """
        story = self._resolve(story_id)
        if story is None or story.id in self._generating:
            return None
        ledger = Ledger(story.messages)
        index = ledger.find_index(message_id)
        if index is None:
            return None

        previous = ledger.snapshot()
        ledger.truncate(index)
        contents = compile_prompt(
            story.setup,
            ledger.history(),
            MemoryStore(story.memory).active_subset(),
        )
        self._commit(story.id, messages=ledger.messages)

        self._generating.add(story.id)
        try:
            result = await self._gateway.generate(contents, stage="regenerate")
        except BaseException:
            self._commit(story.id, messages=list(previous))
            raise
        finally:
            self._generating.discard(story.id)

        if not result.ok:
            logger.info("Regenerate failed, restoring %d messages", len(previous))
            self._commit(story.id, messages=list(previous))
            return None

        reply = _model_message(result.segment)
        self._append(story.id, reply)
        return reply

    # ------------------------------------------------------------------
    # Local edits (no generation)
    # ------------------------------------------------------------------

    def edit_message(
        self, message_id: str, text: str, story_id: str | None = None
    ) -> bool:
        story = self._resolve(story_id)
        if story is None:
            return False
        ledger = Ledger(story.messages)
        if not ledger.edit(message_id, text):
            return False
        self._commit(story.id, messages=ledger.messages)
        return True

    def rename_story(self, title: str, story_id: str | None = None) -> Story | None:
        story = self._resolve(story_id)
        if story is None or not title.strip():
            return story
        return self._commit(story.id, title=title)

    def update_setup(self, setup: StorySetup, story_id: str | None = None) -> Story | None:
        story = self._resolve(story_id)
        if story is None:
            return None
        return self._commit(story.id, setup=setup)

    def add_memory(self, story_id: str | None = None) -> Memory | None:
        story = self._resolve(story_id)
        if story is None:
            return None
        store = MemoryStore(story.memory)
        memory = store.add()
        self._commit(story.id, memory=store.memories)
        return memory

    def update_memory(
        self, memory_id: str, text: str, story_id: str | None = None
    ) -> None:
        self._edit_memory(story_id, lambda store: store.update(memory_id, text))

    def set_memory_active(
        self, memory_id: str, active: bool, story_id: str | None = None
    ) -> None:
        self._edit_memory(story_id, lambda store: store.set_active(memory_id, active))

    def toggle_memory(self, memory_id: str, story_id: str | None = None) -> None:
        story = self._resolve(story_id)
        memory = MemoryStore(story.memory).get(memory_id) if story else None
        if memory is not None:
            self.set_memory_active(memory_id, not memory.active, story.id)

    def remove_memory(self, memory_id: str, story_id: str | None = None) -> None:
        self._edit_memory(story_id, lambda store: store.remove(memory_id))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _resolve(self, story_id: str | None) -> Story | None:
        sid = story_id or self.current_story_id
        return self.get_story(sid) if sid else None

    def _edit_memory(
        self, story_id: str | None, op: Callable[[MemoryStore], None]
    ) -> None:
        story = self._resolve(story_id)
        if story is None:
            return
        store = MemoryStore(story.memory)
        op(store)
        if store.memories != story.memory:
            self._commit(story.id, memory=store.memories)

    def _discard(self, story_id: str) -> None:
        self._stories = [s for s in self._stories if s.id != story_id]
        if self.current_story_id == story_id:
            self.current_story_id = None
        self._persist()

    def _append(self, story_id: str, message: Message) -> None:
        story = self.get_story(story_id)
        if story is None:
            raise KeyError(story_id)
        self._commit(story_id, messages=[*story.messages, message])

    def _commit(self, story_id: str, **updates: object) -> Story:
        """Replace the story keyed by id and notify the persistence hook."""
        for i, s in enumerate(self._stories):
            if s.id == story_id:
                updated = s.model_copy(update={**updates, "last_updated": now_iso()})
                self._stories[i] = updated
                self._persist()
                return updated
        raise KeyError(story_id)

    def _persist(self) -> None:
        if self._on_change is not None:
            self._on_change(self.stories)


def _model_message(segment: StorySegment) -> Message:
    return Message(role="model", text=segment.content, choices=list(segment.choices))
