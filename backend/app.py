import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from backend.routes import router
from coauthor.config import build_llm, llm_settings
from coauthor.gateway import StoryGateway
from coauthor.session import AppSession
from coauthor.storage import Storage

load_dotenv(Path(__file__).parent.parent / ".env")

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"


def create_app(data_dir: Path | None = None) -> FastAPI:
    resolved = data_dir or Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR)))
    storage = Storage(resolved)
    config = storage.get_config()
    storage.login_delay = config["login_delay"]
    gateway = StoryGateway(
        build_llm(config), temperature=float(llm_settings(config)["temperature"])
    )
    session = AppSession(storage, gateway)
    session.start()

    app = FastAPI(title="CoAuthor")
    app.state.storage = storage
    app.state.gateway = gateway
    app.state.session = session
    app.include_router(router, prefix="/api")
    return app


# Default app instance for uvicorn (uses DATA_DIR env var or default)
app = create_app()
