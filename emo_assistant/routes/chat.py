"""Reply model proxy.

The browser never sees the API key: it posts the transcript here and the
server forwards it to the Anthropic Messages API with the system prompt.
"""

import logging

from fastapi import APIRouter, HTTPException, Request

from emo_assistant import config
from emo_assistant.llm import HttpLLM, LLMError
from emo_assistant.prompts import PromptError, system_prompt

from .models import ChatBody, ChatReply

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/chat", response_model=ChatReply)
async def chat(request: Request, body: ChatBody):
    """Send a transcript to the reply model and return the raw reply."""
    if not body.message.strip():
        raise HTTPException(400, "Message is empty")

    settings = config.get_config(request.app.state.config_path)
    llm_settings = settings["llm"]
    if llm_settings["format"] == "anthropic" and not llm_settings["api_key"]:
        raise HTTPException(500, "ANTHROPIC_API_KEY is not configured")

    try:
        prompt = system_prompt(stories=body.stories)
    except PromptError as e:
        raise HTTPException(500, str(e))

    llm = HttpLLM(
        provider_url=llm_settings["url"],
        api_key=llm_settings["api_key"],
        provider_format=llm_settings["format"],
        model=llm_settings["model"],
        system_prompt=prompt,
        max_tokens=int(llm_settings["max_tokens"]),
        timeout=float(llm_settings["timeout"]),
    )
    try:
        reply = await llm(body.message)
    except LLMError as e:
        logger.warning("Chat request failed: %s", e)
        raise HTTPException(502, str(e))
    return ChatReply(response=reply)
