"""Memory store: the ordered set of pinned facts for one story.

Insertion order is injection order: active_subset() returns exactly the
memories the prompt compiler receives, in the order they were added.
There is no size cap and no summarisation; callers own the context budget.
"""

from __future__ import annotations

from collections.abc import Iterable

from coauthor.models import Memory

PLACEHOLDER_TEXT = "New memory detail..."


class MemoryStore:
    def __init__(self, memories: Iterable[Memory] = ()) -> None:
        self._memories: list[Memory] = list(memories)

    @property
    def memories(self) -> list[Memory]:
        return list(self._memories)

    def add(self) -> Memory:
        memory = Memory(text=PLACEHOLDER_TEXT, active=True)
        self._memories.append(memory)
        return memory

    def update(self, memory_id: str, text: str) -> None:
        self._replace(memory_id, text=text)

    def set_active(self, memory_id: str, active: bool) -> None:
        self._replace(memory_id, active=active)

    def remove(self, memory_id: str) -> None:
        self._memories = [m for m in self._memories if m.id != memory_id]

    def active_subset(self) -> list[Memory]:
        return [m for m in self._memories if m.active]

    def get(self, memory_id: str) -> Memory | None:
        for m in self._memories:
            if m.id == memory_id:
                return m
        return None

    def _replace(self, memory_id: str, **fields: object) -> None:
        for i, m in enumerate(self._memories):
            if m.id == memory_id:
                self._memories[i] = m.model_copy(update=fields)
                return
