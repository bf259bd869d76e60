from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from app.core.llm.reply import LLMReply, parse_reply


class OpenAIError(Exception):
    """Base error for OpenAI client failures (safe to map to 502)."""


class OpenAIUnavailableError(OpenAIError):
    """Raised when OpenAI is not configured (e.g., missing API key)."""


class OpenAIUpstreamError(OpenAIError):
    """Raised when the OpenAI API fails or returns an unexpected envelope."""


@dataclass(frozen=True)
class OpenAIConfig:
    api_key: str
    base_url: str
    model: str
    timeout_seconds: float


class OpenAIClient:
    """
    Minimal chat-completions client.

    Design notes:
    - No logging in this module (prompts/outputs may contain PHI).
    - Stateless requests; temperature is chosen per prompt variant.
    - `generate_json` never raises for a non-JSON answer; callers get `UnparsedReply`.
    """

    def __init__(self, *, config: OpenAIConfig, transport: httpx.AsyncBaseTransport | None = None):
        self._config = config
        self._transport = transport

    async def complete(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.5,
        json_mode: bool = True,
    ) -> str:
        url = f"{self._config.base_url.rstrip('/')}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self._config.api_key}",
            "Content-Type": "application/json",
        }
        payload: dict[str, Any] = {
            "model": self._config.model,
            "temperature": temperature,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout_seconds, transport=self._transport
            ) as client:
                resp = await client.post(url, headers=headers, json=payload)
        except httpx.TimeoutException as exc:
            raise OpenAIUpstreamError("LLM request timed out") from exc
        except httpx.HTTPError as exc:
            raise OpenAIUpstreamError("LLM request failed") from exc

        if resp.status_code != 200:
            # Avoid leaking upstream details to callers; map to generic 502 at the edge.
            raise OpenAIUpstreamError("LLM service returned an error")

        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise OpenAIUpstreamError("LLM response envelope was malformed") from exc

        return content or ""

    async def generate_json(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.5,
        json_mode: bool = True,
    ) -> LLMReply:
        text = await self.complete(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            temperature=temperature,
            json_mode=json_mode,
        )
        return parse_reply(text)
