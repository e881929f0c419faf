"""Health check and settings endpoints."""

from fastapi import APIRouter, Request

from emo_assistant import config

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/settings")
async def get_settings(request: Request):
    """Get app settings (llm, timings, narration, meditation, screen). No secrets."""
    return config.public_config(config.get_config(request.app.state.config_path))


@router.patch("/settings")
async def update_settings(request: Request, body: dict):
    """Update app settings (partial merge, one level deep)."""
    updated = config.update_config(body, request.app.state.config_path)
    return config.public_config(updated)
