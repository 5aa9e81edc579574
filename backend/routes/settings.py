"""Health check, settings and theme endpoints."""

from fastapi import APIRouter, Depends, Request

from coauthor.config import build_llm, llm_settings
from coauthor.session import AppSession

from .deps import get_session
from .models import ThemeBody

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/settings")
async def get_settings(request: Request):
    """Get app settings (generation backend, login delay)."""
    return request.app.state.storage.get_config()


@router.patch("/settings")
async def update_settings(body: dict, request: Request):
    """Update app settings (partial merge) and reconnect the generation backend."""
    storage = request.app.state.storage
    config = storage.update_config(body)
    storage.login_delay = config["login_delay"]
    request.app.state.gateway.reconfigure(
        build_llm(config), float(llm_settings(config)["temperature"])
    )
    return config


@router.get("/theme")
async def get_theme(session: AppSession = Depends(get_session)):
    return {"theme": session.theme}


@router.post("/theme")
async def set_theme(body: ThemeBody, session: AppSession = Depends(get_session)):
    """Set the theme, or toggle it when no theme is given."""
    if body.theme is None:
        theme = session.toggle_theme()
    else:
        theme = session.set_theme(body.theme)
    return {"theme": theme}
