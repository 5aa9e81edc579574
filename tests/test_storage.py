"""Tests for JSON storage: mock login, session, stories, config."""

import base64
import json

import pytest

from coauthor.models import Memory, Message, Story, StorySetup, User
from coauthor.storage import AuthError, Storage

SETUP = StorySetup(setting="a ship", vibe="tense", protagonist="a stowaway")


async def test_authenticate_any_non_empty_pair(storage: Storage) -> None:
    user = await storage.authenticate("kira@example.com", "hunter2")
    assert user.email == "kira@example.com"
    assert user.name == "kira"
    assert base64.urlsafe_b64decode(user.id).decode() == "kira@example.com"


async def test_authenticate_is_stable(storage: Storage) -> None:
    a = await storage.authenticate("kira@example.com", "x")
    b = await storage.authenticate("kira@example.com", "y")
    assert a.id == b.id


@pytest.mark.parametrize("email,password", [("", "pw"), ("   ", "pw"), ("kira@example.com", "")])
async def test_authenticate_rejects_blank(storage: Storage, email: str, password: str) -> None:
    with pytest.raises(AuthError):
        await storage.authenticate(email, password)


def test_session_roundtrip(storage: Storage) -> None:
    assert storage.load_session() is None
    user = User(id="abc", email="kira@example.com", name="kira")
    storage.save_session(user)
    assert storage.load_session() == user
    storage.clear_session()
    assert storage.load_session() is None


def test_theme_survives_logout(storage: Storage) -> None:
    assert storage.get_theme() == "dark"
    storage.save_theme("light")
    storage.save_session(User(id="abc", email="a@b.c"))
    storage.clear_session()
    assert storage.get_theme() == "light"


def test_load_stories_empty(storage: Storage) -> None:
    assert storage.load_stories("nobody") == []


def test_save_and_load_stories(storage: Storage, tmp_path) -> None:
    story = Story(
        title="a ship...",
        setup=SETUP,
        messages=[Message(role="model", text="You hide.", choices=["a", "b", "c"])],
        memory=[Memory(text="Kira", active=False)],
    )
    storage.save_stories("abc", [story])

    assert storage.load_stories("abc") == [story]
    path = tmp_path / "stories" / "coauthor_stories_abc.json"
    assert json.loads(path.read_text())[0]["title"] == "a ship..."


def test_save_stories_overwrites_whole_collection(storage: Storage) -> None:
    a = Story(title="A", setup=SETUP)
    b = Story(title="B", setup=SETUP)
    storage.save_stories("abc", [a, b])
    storage.save_stories("abc", [b])
    assert [s.title for s in storage.load_stories("abc")] == ["B"]


def test_stories_namespaced_per_user(storage: Storage) -> None:
    storage.save_stories("one", [Story(title="A", setup=SETUP)])
    assert storage.load_stories("two") == []


def test_config_defaults_and_update(tmp_path) -> None:
    storage = Storage(tmp_path)
    config = storage.get_config()
    assert config["llm"]["provider_format"] == "gemini"
    assert config["llm"]["temperature"] == 0.85

    storage.update_config({"llm": {"model": "gemini-2.5-flash"}, "login_delay": 0})
    reloaded = Storage(tmp_path).get_config()
    assert reloaded["llm"]["model"] == "gemini-2.5-flash"
    assert reloaded["llm"]["provider_format"] == "gemini"
    assert reloaded["login_delay"] == 0
