"""Prompt compiler: story state → ordered request turns.

compile_prompt() is pure. The leading instruction turn is re-rendered from
the current setup and active memories on every call and is never stored, so
editing the setup or toggling a memory changes the next request without
rewriting any message.

The instruction turn is a Handlebars template rendered with pybars. Values
use triple-stash so story text reaches the model unescaped.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

import pybars

from coauthor.models import Memory, StorySetup, Turn

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


INSTRUCTION_TEMPLATE = (
    "Story Configuration:\n"
    "- Setting: {{{setting}}}\n"
    "- Vibe/Tone: {{{vibe}}}\n"
    "- Protagonist: {{{protagonist}}}\n"
    "\n"
    "{{#if memories}}"
    "IMPORTANT MEMORY (Always remember these details):"
    "{{#each memories}}\n- {{{this}}}{{/each}}"
    "\n\n"
    "{{/if}}"
    "Instruction: Write the next segment of the story based on the history below.\n"
    "If this is the beginning, write the opening scene."
)


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


def build_instruction(setup: StorySetup, active_memories: Sequence[Memory]) -> str:
    return render_prompt(INSTRUCTION_TEMPLATE, {
        "setting": setup.setting,
        "vibe": setup.vibe,
        "protagonist": setup.protagonist,
        "memories": [m.text for m in active_memories],
    })


def compile_prompt(
    setup: StorySetup,
    history: Sequence[Turn],
    active_memories: Sequence[Memory],
    new_input: str | None = None,
) -> list[Turn]:
    """Build the ordered turns of one generation request.

    1. A synthetic user turn with the setup, active memories and instruction.
    2. Every history turn, verbatim, in order.
    3. The new free-text input as a final user turn, when given.
    """
    contents = [Turn(role="user", text=build_instruction(setup, active_memories))]
    contents.extend(Turn(role=t.role, text=t.text) for t in history)
    if new_input:
        contents.append(Turn(role="user", text=new_input))
    return contents
