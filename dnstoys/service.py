"""The interface shared by every query service."""

from __future__ import annotations

from abc import ABC, abstractmethod


class QueryError(Exception):
    """A query could not be answered; the message is sent back to the client."""


class Service(ABC):
    """Answers one kind of DNS query with zone-file formatted records."""

    @abstractmethod
    def query(self, q: str) -> list[str]:
        """Return the resource records, in zone-file text form, answering ``q``."""

    def dump(self) -> bytes | None:
        """Return a snapshot of the service's cached state, if it keeps any."""
        return None