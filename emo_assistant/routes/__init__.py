"""FastAPI API endpoints under /api.

Endpoint groups: health + settings, chat (reply model proxy), directives
(parse a reply, list the vocabularies).
"""

from fastapi import APIRouter

from .chat import router as chat_router
from .directives import router as directives_router
from .settings import router as settings_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(chat_router)
router.include_router(directives_router)
