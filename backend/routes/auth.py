"""Mock login, session restore and logout endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from coauthor.session import AppSession
from coauthor.storage import AuthError

from .deps import get_session
from .models import LoginBody

router = APIRouter()


@router.get("/session")
async def current_session(session: AppSession = Depends(get_session)):
    """Get the logged-in user (or null) and the theme."""
    return {"user": session.user, "theme": session.theme}


@router.post("/login")
async def login(body: LoginBody, session: AppSession = Depends(get_session)):
    """Log in with any non-empty email and password."""
    try:
        user = await session.login(body.email, body.password)
    except AuthError as e:
        raise HTTPException(400, str(e))
    return user


@router.post("/logout")
async def logout(session: AppSession = Depends(get_session)):
    """Clear the session and unload the user's stories."""
    session.logout()
    return {"ok": True}
