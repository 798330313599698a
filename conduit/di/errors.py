"""
Errors raised by the service locator.
"""

from typing import Iterable, Optional


class DIError(Exception):
    pass


class ProviderNotFoundError(DIError):
    """Nothing is bound under the requested token (and tag)."""

    def __init__(self, token: str, tag: Optional[str] = None, candidates: Iterable[str] = ()):
        self.token = token
        self.tag = tag
        self.candidates = list(candidates)

        where = f"{token} (tag={tag})" if tag else token
        lines = [f"Nothing registered for {where}"]
        if self.candidates:
            lines.append("Registered under other tags: " + ", ".join(self.candidates))
        super().__init__("\n".join(lines))


class DuplicateProviderError(DIError):
    """A different provider is already registered under the same key."""

    def __init__(self, token: str, tag: Optional[str], existing: str):
        self.token = token
        self.tag = tag
        super().__init__(f"{token} (tag={tag}) is already provided by {existing}")
