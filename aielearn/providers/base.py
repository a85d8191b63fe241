from __future__ import annotations

from abc import ABC, abstractmethod

SYSTEM_PROMPT = (
    "You are an expert English language learning assistant "
    "that creates engaging and educational quizzes."
)


class LLMProvider(ABC):
    """Text-in, text-out access to a language model.

    Implementations raise ``aielearn.errors.TransportError`` for network
    failures and ``aielearn.errors.StatusError`` for non-success responses.
    """

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        temperature: float = 0.7,
        system: str | None = SYSTEM_PROMPT,
        max_tokens: int | None = None,
    ) -> str:
        ...

    @abstractmethod
    def name(self) -> str:
        ...
