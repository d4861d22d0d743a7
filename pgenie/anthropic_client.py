"""Async client for the Anthropic Messages API.

Wraps ``POST /v1/messages`` with proper timeout handling and a structured
response.  Failures never raise: they come back as an ``AnthropicResponse``
with ``success=False`` and an ``error`` message, leaving the caller to decide
how fatal they are.

Typical usage::

    client = AnthropicClient(api_key=config.require_api_key())
    resp = await client.generate("Describe a blog schema")
    if resp.success:
        print(resp.text)
"""

from __future__ import annotations

import httpx
from pydantic import BaseModel, Field

ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_MODEL = "claude-3-5-sonnet-20241022"


class AnthropicResponse(BaseModel):
    """Structured response from a Messages API call."""

    text: str = Field(default="", description="Generated text")
    model: str = Field(default="", description="Model that produced the response")
    stop_reason: str | None = Field(default=None, description="Why generation stopped")
    input_tokens: int = Field(default=0)
    output_tokens: int = Field(default=0)
    success: bool = Field(default=True, description="Whether the request succeeded")
    error: str | None = Field(default=None, description="Error message on failure")


class AnthropicClient:
    """Async client for the Anthropic REST API.

    Uses ``httpx.AsyncClient`` for non-blocking HTTP.  The API key is passed
    in explicitly; the client never reads the environment.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.anthropic.com",
        model: str = DEFAULT_MODEL,
        max_tokens: int = 8192,
        timeout: int = 120,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` configured with our base URL and headers."""
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "content-type": "application/json",
            },
        )

    @staticmethod
    def _extract_text(data: dict) -> str | None:
        """Return the text of the first content block, or ``None`` if it is not text."""
        content = data.get("content") or []
        if not content:
            return None
        first = content[0]
        if not isinstance(first, dict) or first.get("type") != "text":
            return None
        return first.get("text", "")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate(
        self,
        prompt: str,
        system: str = "",
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> AnthropicResponse:
        """Send a single user message and return the model's reply.

        Args:
            prompt: The user message.
            system: Optional system prompt.
            model: Override for the configured model.
            max_tokens: Override for the configured token limit.

        Returns:
            An ``AnthropicResponse`` with the generated text or an error.
        """
        model = model or self.model
        payload: dict = {
            "model": model,
            "max_tokens": max_tokens or self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            payload["system"] = system

        try:
            async with self._client() as client:
                response = await client.post("/v1/messages", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.ConnectError:
            return AnthropicResponse(
                model=model,
                success=False,
                error=f"Cannot connect to the Anthropic API at {self.base_url}.",
            )
        except httpx.TimeoutException:
            return AnthropicResponse(
                model=model,
                success=False,
                error=f"Request to the Anthropic API timed out after {self.timeout}s.",
            )
        except httpx.HTTPStatusError as exc:
            return AnthropicResponse(
                model=model,
                success=False,
                error=(
                    f"Anthropic API returned HTTP {exc.response.status_code}: "
                    f"{exc.response.text[:500]}"
                ),
            )
        except (httpx.HTTPError, ValueError) as exc:
            return AnthropicResponse(
                model=model,
                success=False,
                error=f"Unexpected error calling the Anthropic API: {exc}",
            )

        if not isinstance(data, dict):
            return AnthropicResponse(
                model=model,
                success=False,
                error="Invalid response from AI model: expected a JSON object",
            )

        text = self._extract_text(data)
        if text is None:
            return AnthropicResponse(
                model=data.get("model", model),
                success=False,
                error="Invalid response from AI model: expected a text block",
            )

        usage = data.get("usage") or {}
        return AnthropicResponse(
            text=text,
            model=data.get("model", model),
            stop_reason=data.get("stop_reason"),
            input_tokens=usage.get("input_tokens", 0),
            output_tokens=usage.get("output_tokens", 0),
            success=True,
        )
