from __future__ import annotations

import logging
import os

from aielearn.errors import ParseError, StatusError, TransportError
from aielearn.providers.base import SYSTEM_PROMPT, LLMProvider

log = logging.getLogger("aielearn.llm")


class OpenAIProvider(LLMProvider):
    def __init__(self, model: str = "gpt-4o-mini", api_key: str | None = None, timeout: float = 60.0):
        import openai
        self._openai = openai
        self.client = openai.AsyncOpenAI(
            api_key=api_key or os.environ.get("OPENAI_API_KEY", ""),
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
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        kwargs = {}
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens
        try:
            resp = await self.client.chat.completions.create(
                model=self.model,
                temperature=temperature,
                messages=messages,
                **kwargs,
            )
        except self._openai.APIStatusError as e:
            raise StatusError(e.status_code, str(e)) from e
        except self._openai.APIConnectionError as e:
            raise TransportError(str(e)) from e
        if not resp.choices or resp.choices[0].message.content is None:
            raise ParseError("OpenAI response had no message content")
        log.debug("OpenAI response (%s): %.500s", self.model, resp.choices[0].message.content)
        return resp.choices[0].message.content

    def name(self) -> str:
        return f"openai/{self.model}"
