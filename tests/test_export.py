"""Tests for the plain-text export."""

import logging

import pytest

from coauthor.export import export_filename, export_story, render_text
from coauthor.models import Message, Story, StorySetup

STORY = Story(
    title="The Stowaway's Run!",
    setup=StorySetup(setting="a ship", vibe="tense", protagonist="a stowaway"),
    messages=[
        Message(role="model", text="You hide among crates.", choices=["a", "b", "c"]),
        Message(role="user", text="Sneak out"),
    ],
)


def test_render_text_exact():
    assert render_text(STORY) == (
        "Title: The Stowaway's Run!\n"
        "Setting: a ship\n"
        "Vibe: tense\n"
        "Protagonist: a stowaway\n"
        "\n"
        "--------------------------------\n"
        "\n"
        "CoAuthor:\nYou hide among crates.\n\n"
        "You:\nSneak out\n\n"
    )


def test_render_text_without_messages_ends_after_separator():
    empty = STORY.model_copy(update={"messages": []})
    assert render_text(empty).endswith("--------------------------------\n\n")


def test_filename():
    assert export_filename(STORY) == "the_stowaway_s_run_.txt"


def test_txt_export():
    assert export_story(STORY, "txt") == ("the_stowaway_s_run_.txt", render_text(STORY))


@pytest.mark.parametrize("fmt", ["pdf", "epub", "mobi"])
def test_rich_formats_downgrade_to_text(fmt, caplog):
    with caplog.at_level(logging.WARNING, logger="coauthor.export"):
        filename, text = export_story(STORY, fmt)
    assert filename.endswith(".txt")
    assert text == render_text(STORY)
    assert f".{fmt}" in caplog.text


def test_unknown_format():
    with pytest.raises(ValueError):
        export_story(STORY, "docx")
