"""Request dependencies: the app session and the logged-in user's stories."""

from fastapi import HTTPException, Request

from coauthor.models import Story
from coauthor.orchestrator import StoryOrchestrator
from coauthor.session import AppSession


def get_session(request: Request) -> AppSession:
    return request.app.state.session


def get_orchestrator(request: Request) -> StoryOrchestrator:
    orchestrator = get_session(request).orchestrator
    if orchestrator is None:
        raise HTTPException(401, "Not logged in")
    return orchestrator


def get_story_or_404(orchestrator: StoryOrchestrator, story_id: str) -> Story:
    story = orchestrator.get_story(story_id)
    if story is None:
        raise HTTPException(404, "Story not found")
    return story
