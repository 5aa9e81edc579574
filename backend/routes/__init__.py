"""FastAPI API endpoints under /api.

Endpoint groups: health/settings/theme, session (mock login), stories.
Each story's child resources (messages, memory, export) are nested under
/api/stories/{story_id}/.
"""

from fastapi import APIRouter

from .auth import router as auth_router
from .settings import router as settings_router
from .stories import router as stories_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(auth_router)
router.include_router(stories_router)
