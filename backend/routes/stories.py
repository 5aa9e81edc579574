"""Story endpoints: create, chat, edit, regenerate, memory, export."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse

from coauthor.export import export_story
from coauthor.models import StorySetup
from coauthor.orchestrator import StoryOrchestrator

from .deps import get_orchestrator, get_story_or_404
from .models import ChatBody, EditMessage, SetupBody, UpdateMemory, UpdateStory

router = APIRouter()


@router.get("/stories")
async def list_stories(orchestrator: StoryOrchestrator = Depends(get_orchestrator)):
    """List the user's stories, newest first."""
    return orchestrator.stories


@router.post("/stories")
async def create_story(
    body: SetupBody, orchestrator: StoryOrchestrator = Depends(get_orchestrator)
):
    """Start a story and generate its opening segment."""
    story = await orchestrator.create_story(StorySetup(**body.model_dump()))
    if story is None:
        raise HTTPException(502, "Story generation failed")
    return story


@router.get("/stories/{story_id}")
async def get_story(
    story_id: str, orchestrator: StoryOrchestrator = Depends(get_orchestrator)
):
    """Get a story and bring it into focus."""
    story = get_story_or_404(orchestrator, story_id)
    orchestrator.focus(story.id)
    return {**story.model_dump(), "generating": orchestrator.is_generating(story.id)}


@router.patch("/stories/{story_id}")
async def update_story(
    story_id: str,
    body: UpdateStory,
    orchestrator: StoryOrchestrator = Depends(get_orchestrator),
):
    """Rename a story and/or replace its setup."""
    get_story_or_404(orchestrator, story_id)
    if body.title is not None:
        orchestrator.rename_story(body.title, story_id)
    if body.setup is not None:
        orchestrator.update_setup(StorySetup(**body.setup.model_dump()), story_id)
    return orchestrator.get_story(story_id)


@router.post("/stories/{story_id}/chat")
async def chat(
    story_id: str,
    body: ChatBody,
    orchestrator: StoryOrchestrator = Depends(get_orchestrator),
):
    """Send a choice or free-form action and generate the next segment."""
    get_story_or_404(orchestrator, story_id)
    if orchestrator.is_generating(story_id):
        raise HTTPException(409, "A segment is already being generated")
    reply = await orchestrator.submit_user_turn(body.message, story_id)
    if reply is None:
        raise HTTPException(409, "A segment is already being generated")
    return orchestrator.get_story(story_id)


@router.patch("/stories/{story_id}/messages/{message_id}")
async def edit_message(
    story_id: str,
    message_id: str,
    body: EditMessage,
    orchestrator: StoryOrchestrator = Depends(get_orchestrator),
):
    """Replace a message's text in place. Does not trigger generation."""
    get_story_or_404(orchestrator, story_id)
    if not orchestrator.edit_message(message_id, body.text, story_id):
        raise HTTPException(404, "Message not found")
    return orchestrator.get_story(story_id)


@router.post("/stories/{story_id}/messages/{message_id}/regenerate")
async def regenerate(
    story_id: str,
    message_id: str,
    orchestrator: StoryOrchestrator = Depends(get_orchestrator),
):
    """Discard this message and everything after it, then generate again."""
    story = get_story_or_404(orchestrator, story_id)
    if not any(m.id == message_id for m in story.messages):
        raise HTTPException(404, "Message not found")
    if orchestrator.is_generating(story_id):
        raise HTTPException(409, "A segment is already being generated")
    reply = await orchestrator.regenerate(message_id, story_id)
    if reply is None:
        raise HTTPException(502, "Regeneration failed, story restored")
    return orchestrator.get_story(story_id)


@router.post("/stories/{story_id}/memory")
async def add_memory(
    story_id: str, orchestrator: StoryOrchestrator = Depends(get_orchestrator)
):
    """Pin a new memory with placeholder text."""
    get_story_or_404(orchestrator, story_id)
    return orchestrator.add_memory(story_id)


@router.patch("/stories/{story_id}/memory/{memory_id}")
async def update_memory(
    story_id: str,
    memory_id: str,
    body: UpdateMemory,
    orchestrator: StoryOrchestrator = Depends(get_orchestrator),
):
    """Edit a memory's text and/or toggle its inclusion."""
    story = get_story_or_404(orchestrator, story_id)
    if not any(m.id == memory_id for m in story.memory):
        raise HTTPException(404, "Memory not found")
    if body.text is not None:
        orchestrator.update_memory(memory_id, body.text, story_id)
    if body.active is not None:
        orchestrator.set_memory_active(memory_id, body.active, story_id)
    return orchestrator.get_story(story_id).memory


@router.delete("/stories/{story_id}/memory/{memory_id}")
async def delete_memory(
    story_id: str,
    memory_id: str,
    orchestrator: StoryOrchestrator = Depends(get_orchestrator),
):
    """Remove a memory."""
    get_story_or_404(orchestrator, story_id)
    orchestrator.remove_memory(memory_id, story_id)
    return {"ok": True}


@router.get("/stories/{story_id}/export")
async def export(
    story_id: str,
    format: str = "txt",
    orchestrator: StoryOrchestrator = Depends(get_orchestrator),
):
    """Download the story as plain text. Rich formats fall back to text."""
    story = get_story_or_404(orchestrator, story_id)
    try:
        filename, text = export_story(story, format)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return PlainTextResponse(
        text, headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
