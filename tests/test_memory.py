"""Tests for the memory store."""

from coauthor.memory import PLACEHOLDER_TEXT, MemoryStore
from coauthor.models import Memory


def test_add_appends_active_placeholder():
    store = MemoryStore([Memory(text="first")])
    added = store.add()
    assert added.text == PLACEHOLDER_TEXT
    assert added.active is True
    assert store.memories[-1] == added
    assert len(store.memories) == 2


def test_update_replaces_text_only():
    m = Memory(text="old", active=False)
    store = MemoryStore([m])
    store.update(m.id, "new")
    updated = store.memories[0]
    assert updated.id == m.id
    assert updated.text == "new"
    assert updated.active is False


def test_update_unknown_id_is_noop():
    m = Memory(text="old")
    store = MemoryStore([m])
    store.update("missing", "new")
    assert store.memories == [m]


def test_remove():
    a, b = Memory(text="a"), Memory(text="b")
    store = MemoryStore([a, b])
    store.remove(a.id)
    assert store.memories == [b]
    store.remove("missing")
    assert store.memories == [b]


def test_active_subset_preserves_order():
    a = Memory(text="A", active=True)
    b = Memory(text="B", active=False)
    c = Memory(text="C", active=True)
    store = MemoryStore([a, b, c])
    assert [m.text for m in store.active_subset()] == ["A", "C"]


def test_set_active_toggles_inclusion():
    a = Memory(text="A")
    store = MemoryStore([a])
    store.set_active(a.id, False)
    assert store.active_subset() == []
    store.set_active(a.id, True)
    assert [m.id for m in store.active_subset()] == [a.id]


def test_source_list_not_mutated():
    source = [Memory(text="A")]
    store = MemoryStore(source)
    store.add()
    store.update(source[0].id, "changed")
    assert len(source) == 1
    assert source[0].text == "A"
