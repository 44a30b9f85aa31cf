"""Random version 4 UUIDs."""

from __future__ import annotations

import re
import uuid

from dnstoys.service import QueryError, Service

_INT = re.compile(r"[+-]?[0-9]+")


def _atoi_or_zero(s: str) -> int:
    if not _INT.fullmatch(s):
        return 0
    value = int(s)
    return value if -(2**63) <= value < 2**63 else 0


class UUIDGen(Service):
    """Answers a count with that many random UUIDs."""

    def __init__(self, max_results: int) -> None:
        self.max_results = max(max_results, 1)

    def query(self, q: str) -> list[str]:
        num = 1
        if q != ".uuid":
            num = _atoi_or_zero(q)
            if not 1 <= num <= self.max_results:
                raise QueryError(f"provide 1-{self.max_results}.uuid")
        return [f'{q} 1 TXT "{uuid.uuid4()}"' for _ in range(num)]

    def dump(self) -> bytes | None:
        return None