from __future__ import annotations

import logging
import time

import httpx

from aielearn.errors import ParseError, StatusError, TransportError
from aielearn.providers.base import SYSTEM_PROMPT, LLMProvider

log = logging.getLogger("aielearn.llm")


class OllamaProvider(LLMProvider):
    def __init__(self, base_url: str = "http://localhost:11434", model: str = "qwen3:8b", timeout: float = 120.0):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    async def generate(
        self,
        prompt: str,
        temperature: float = 0.7,
        system: str | None = SYSTEM_PROMPT,
        max_tokens: int | None = None,
    ) -> str:
        log.info("── PROMPT (%s) ──\n%s", self.model, prompt)
        body: dict = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "think": False,
            "options": {"temperature": temperature},
        }
        if system:
            body["system"] = system
        if max_tokens is not None:
            body["options"]["num_predict"] = max_tokens

        t0 = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(f"{self.base_url}/api/generate", json=body)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            raise StatusError(e.response.status_code, e.response.text) from e
        except httpx.HTTPError as e:
            raise TransportError(str(e) or type(e).__name__) from e
        except ValueError as e:
            raise ParseError(f"Ollama returned invalid JSON: {e}") from e

        elapsed = time.monotonic() - t0
        response = data.get("response") if isinstance(data, dict) else None
        if not response:
            raise ParseError("Ollama response had no text")
        tokens = data.get("eval_count", "?")
        log.info("── RESPONSE (%.1fs, %s tokens) ──\n%s", elapsed, tokens, response)
        return response

    def name(self) -> str:
        return f"ollama/{self.model}"
