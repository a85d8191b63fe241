from __future__ import annotations

import os

from aielearn.errors import ParseError, StatusError, TransportError
from aielearn.providers.base import SYSTEM_PROMPT, LLMProvider


class AnthropicProvider(LLMProvider):
    def __init__(self, model: str = "claude-sonnet-4-20250514", api_key: str | None = None, timeout: float = 60.0):
        import anthropic
        self._anthropic = anthropic
        self.client = anthropic.AsyncAnthropic(
            api_key=api_key or os.environ.get("ANTHROPIC_API_KEY", ""),
            timeout=timeout,
            max_retries=0,
        )
        self.model = model

    async def generate(
        self,
        prompt: str,
        temperature: float = 0.7,
        system: str | None = SYSTEM_PROMPT,
        max_tokens: int | None = None,
    ) -> str:
        kwargs = {}
        if system:
            kwargs["system"] = system
        try:
            message = await self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens or 1024,
                temperature=temperature,
                messages=[{"role": "user", "content": prompt}],
                **kwargs,
            )
        except self._anthropic.APIStatusError as e:
            raise StatusError(e.status_code, str(e)) from e
        except self._anthropic.APIConnectionError as e:
            raise TransportError(str(e)) from e
        text = "".join(getattr(block, "text", "") for block in message.content)
        if not text:
            raise ParseError("Anthropic response had no text content")
        return text

    def name(self) -> str:
        return f"anthropic/{self.model}"
