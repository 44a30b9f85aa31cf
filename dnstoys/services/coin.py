"""Coin tosses."""

from __future__ import annotations

import random
import re

from dnstoys.service import QueryError, Service

HEADS = "heads"
TAILS = "tails"
MAX_TOSSES = 42

_INT = re.compile(r"[+-]?[0-9]+")


def _atoi(s: str) -> int:
    if not _INT.fullmatch(s):
        raise ValueError(s)
    value = int(s)
    if not -(2**63) <= value < 2**63:
        raise ValueError(s)
    return value


class Coin(Service):
    """Answers ``coin.`` or a count with that many coin tosses."""

    def query(self, q: str) -> list[str]:
        tosses = 1
        if q != "coin.":
            try:
                tosses = _atoi(q)
            except ValueError:
                raise QueryError("invalid coin toss query") from None

        if tosses > MAX_TOSSES:
            raise QueryError(f"max allowed tosses is {MAX_TOSSES}")

        return [f'{q} 1 TXT "{random.choice((HEADS, TAILS))}"' for _ in range(tosses)]

    def dump(self) -> bytes | None:
        return None