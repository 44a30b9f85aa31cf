"""Random numbers in a range."""

from __future__ import annotations

import random
import re

from dnstoys.service import QueryError, Service

_QUERY = re.compile(r"([0-9]+)-([0-9]+)")
_INT64_MAX = 2**63 - 1


def _parse(s: str) -> int:
    value = int(s)
    if value > _INT64_MAX:
        raise QueryError("invalid random query.")
    return value


class Random(Service):
    """Answers ``<min>-<max>`` with a random integer in that inclusive range."""

    def query(self, q: str) -> list[str]:
        match = _QUERY.search(q)
        if match is None:
            raise QueryError("invalid random query.")

        low = _parse(match.group(1))
        high = _parse(match.group(2))
        if high < low:
            raise QueryError("invalid random query.")

        return [f'{q} 1 TXT "{random.randint(low, high)}"']

    def dump(self) -> bytes | None:
        return None