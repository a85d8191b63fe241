"""Failures the content pipeline absorbs by falling back to local content."""
from __future__ import annotations


class GenerationError(Exception):
    """Base class for anything that stops the external generator producing content."""


class ProviderNotConfigured(GenerationError):
    def __init__(self, message: str = "No content provider configured"):
        super().__init__(message)


class TransportError(GenerationError):
    """Network failure or timeout talking to the provider."""


class StatusError(GenerationError):
    def __init__(self, status_code: int, detail: str = ""):
        self.status_code = status_code
        self.detail = detail
        msg = f"Provider returned status {status_code}"
        if detail:
            msg += f": {detail[:200]}"
        super().__init__(msg)


class ParseError(GenerationError):
    """The provider answered, but not with the structure we asked for."""
