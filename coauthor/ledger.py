"""Conversation ledger: the ordered message history of one story.

Append-only by default. replace_prefix() is the single primitive behind both
rewind (pass messages[:k]) and in-place edits (pass the full sequence with one
text replaced). Rewinding is irreversible: there is no redo stack.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from coauthor.models import Message, Turn


class Ledger:
    def __init__(self, messages: Iterable[Message] = ()) -> None:
        self._messages: list[Message] = list(messages)

    def __len__(self) -> int:
        return len(self._messages)

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def append(self, message: Message) -> None:
        self._messages.append(message)

    def replace_prefix(self, new_sequence: Sequence[Message]) -> None:
        self._messages = list(new_sequence)

    def find_index(self, message_id: str) -> int | None:
        for i, m in enumerate(self._messages):
            if m.id == message_id:
                return i
        return None

    def edit(self, message_id: str, text: str) -> bool:
        """Replace one message's text, keeping its id. Unknown ids are a no-op."""
        index = self.find_index(message_id)
        if index is None:
            return False
        updated = list(self._messages)
        updated[index] = updated[index].model_copy(update={"text": text})
        self.replace_prefix(updated)
        return True

    def truncate(self, k: int) -> None:
        self.replace_prefix(self._messages[:k])

    def snapshot(self) -> tuple[Message, ...]:
        """Deep copy of the current sequence, for rollback."""
        return tuple(m.model_copy(deep=True) for m in self._messages)

    def history(self) -> list[Turn]:
        return [Turn(role=m.role, text=m.text) for m in self._messages]
