"""Random developer excuses."""

from __future__ import annotations

import secrets
from collections.abc import Iterable
from pathlib import Path

from dnstoys.service import QueryError, Service


class Excuse(Service):
    """Answers any query with a randomly picked excuse."""

    def __init__(self, excuses: Iterable[str]) -> None:
        self.excuses = list(excuses)

    @classmethod
    def from_file(cls, path: str | Path) -> Excuse:
        """Load excuses one per line, skipping blank lines and # comments."""
        with open(path, encoding="utf-8") as f:
            lines = (line.strip() for line in f)
            return cls(line for line in lines if line and not line.startswith("#"))

    def query(self, q: str) -> list[str]:
        if not self.excuses:
            raise QueryError("error fetching excuse: cannot pick from empty slice")
        return [f'{q} 1 TXT "{secrets.choice(self.excuses)}"']

    def dump(self) -> bytes | None:
        return None