from __future__ import annotations

import asyncio
import logging

import httpx

LOGGER = logging.getLogger(__name__)

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"


class OpenAIAPIError(RuntimeError):
    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"OpenAI API error {status_code}: {body[:300]}")
        self.status_code = status_code


class OpenAIClient:
    """Chat-completions client for short persona replies.

    Timeouts and 5xx responses are retried ``max_retries`` times with a
    growing pause; every other failure surfaces as ``OpenAIAPIError``.
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "gpt-4o-mini",
        timeout_seconds: float = 30.0,
        max_retries: int = 1,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.model = model
        self._headers = {"Authorization": f"Bearer {api_key}"}
        self._timeout = timeout_seconds
        self._max_retries = max_retries
        self._transport = transport

    async def chat(self, messages: list[dict[str, str]], *, max_tokens: int, temperature: float) -> str:
        payload = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            attempt = 0
            while True:
                try:
                    response = await client.post(OPENAI_CHAT_URL, json=payload, headers=self._headers)
                except httpx.TimeoutException as exc:
                    if attempt >= self._max_retries:
                        raise OpenAIAPIError(408, "request timed out") from exc
                else:
                    if response.status_code < 500 or attempt >= self._max_retries:
                        break
                attempt += 1
                LOGGER.warning("OpenAI call retry: attempt=%s", attempt)
                await asyncio.sleep(0.5 * attempt)

        if not response.is_success:
            raise OpenAIAPIError(response.status_code, response.text)
        choices = response.json().get("choices") or [{}]
        return str((choices[0].get("message") or {}).get("content") or "")
