import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from emo_assistant.config import DEFAULT_CONFIG_PATH, ROOT
from emo_assistant.routes import router

load_dotenv(ROOT / ".env")

STATIC_DIR = ROOT / "static"


def create_app(config_path: Path | None = None) -> FastAPI:
    app = FastAPI(title="Emo Assistant")
    app.state.config_path = config_path or Path(os.getenv("EMO_CONFIG", str(DEFAULT_CONFIG_PATH)))
    app.include_router(router, prefix="/api")

    if STATIC_DIR.exists():
        # Serve the avatar front end and its assets
        if (STATIC_DIR / "assets").is_dir():
            app.mount("/assets", StaticFiles(directory=STATIC_DIR / "assets"), name="assets")

        @app.get("/{path:path}")
        async def index_fallback(path: str):
            return FileResponse(STATIC_DIR / "index.html")

    return app


# Default app instance for uvicorn (uses EMO_CONFIG env var or default)
app = create_app()
