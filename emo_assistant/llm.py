"""LLM client — HTTP connection to the language model.

The conversation state machine awaits an LLM callable matching the protocol:

    async def __call__(self, message: str) -> str: ...

`message` is the user's transcript; the return value is the raw reply,
including any trailing or inline directives.

Two implementations are provided:

    HttpLLM   — real HTTP client. Talks either to the Anthropic Messages API
                directly or to the app's own /api/chat proxy. Selected by
                provider_format.
    EchoLLM   — returns the message back unchanged. Lets you type a reply
                with directives in it and watch the avatar react, without a
                running model.

An in-flight request is cancelled by cancelling the task awaiting it.
"""

from __future__ import annotations

import logging
from typing import Literal, Protocol

import httpx

logger = logging.getLogger(__name__)

ANTHROPIC_URL = "https://api.anthropic.com"
ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_MODEL = "claude-3-haiku-20240307"


# ---------------------------------------------------------------------------
# Protocol — every LLM implementation must match this signature
# ---------------------------------------------------------------------------

class LLM(Protocol):
    async def __call__(self, message: str) -> str: ...


# ---------------------------------------------------------------------------
# HttpLLM — Anthropic Messages API or the app's own chat proxy
# ---------------------------------------------------------------------------

ProviderFormat = Literal["anthropic", "proxy"]


class HttpLLM:
    """Async HTTP client for the reply model.

    Supported formats:
      "anthropic"  — POST /v1/messages  {"model", "max_tokens", "system", "messages"}
                     Response: {"content": [{"type": "text", "text": "..."}]}
      "proxy"      — POST /api/chat     {"message": ...}
                     Response: {"response": "..."}

    Args:
        provider_url:    Base URL of the backend.
        api_key:         Anthropic API key (anthropic format only).
        provider_format: Wire format to use. Defaults to "anthropic".
        model:           Model identifier, anthropic format only.
        system_prompt:   System prompt, anthropic format only.
        max_tokens:      Reply length cap, anthropic format only.
        timeout:         HTTP timeout in seconds. Defaults to 30.
    """

    def __init__(
        self,
        provider_url: str = ANTHROPIC_URL,
        api_key: str = "",
        provider_format: ProviderFormat = "anthropic",
        model: str = DEFAULT_MODEL,
        system_prompt: str = "",
        max_tokens: int = 256,
        timeout: float = 30.0,
    ) -> None:
        self._base_url = provider_url.rstrip("/")
        self._api_key = api_key
        self._format = provider_format
        self._model = model
        self._system_prompt = system_prompt
        self._max_tokens = max_tokens
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._format == "anthropic":
            headers["anthropic-version"] = ANTHROPIC_VERSION
            if self._api_key:
                headers["x-api-key"] = self._api_key
        return headers

    def _build_request(self, message: str) -> tuple[str, dict]:
        """Return (url, body) for the configured format."""
        if self._format == "proxy":
            return f"{self._base_url}/api/chat", {"message": message}

        # anthropic (default)
        body: dict = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "messages": [{"role": "user", "content": message}],
        }
        if self._system_prompt:
            body["system"] = self._system_prompt
        return f"{self._base_url}/v1/messages", body

    def _parse_response(self, data: dict) -> str:
        """Extract the reply text from the response body."""
        if self._format == "proxy":
            reply = data.get("response")
            if not isinstance(reply, str):
                raise LLMError("Unexpected response format from chat proxy")
            return reply

        # anthropic
        if "error" in data:
            error = data["error"]
            detail = error.get("message", "unknown error") if isinstance(error, dict) else error
            raise LLMError(f"Anthropic API error: {detail}")
        for block in data.get("content") or []:
            if block.get("type") == "text":
                return block.get("text", "")
        raise LLMError("Unexpected response format from Anthropic API")

    async def __call__(self, message: str) -> str:
        url, body = self._build_request(message)
        logger.debug("llm call url=%s message_len=%d", url, len(message))

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
            text = self._parse_response(resp.json())
        except httpx.ConnectError as e:
            raise LLMError(f"Cannot connect to the reply model at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise LLMError(
                f"Reply model returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise LLMError(f"Reply model timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise LLMError(f"Reply model transport error: {e}") from e
        # Non-JSON body, or content blocks that are not objects
        except (ValueError, AttributeError, TypeError) as e:
            raise LLMError("Unexpected response format from the reply model") from e

        logger.debug("llm response len=%d", len(text))
        return text


# ---------------------------------------------------------------------------
# EchoLLM — returns the message unchanged; useful for directive smoke tests
# ---------------------------------------------------------------------------

class EchoLLM:
    """Returns the message text as-is. No network calls."""

    async def __call__(self, message: str) -> str:
        logger.debug("EchoLLM message_len=%d", len(message))
        return message


# ---------------------------------------------------------------------------
# LLMError — raised by HttpLLM for all connection and protocol failures
# ---------------------------------------------------------------------------

class LLMError(RuntimeError):
    """Raised when the reply model cannot be reached or returns an error."""
