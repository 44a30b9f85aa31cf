"""Random NanoIDs."""

from __future__ import annotations

import re
import secrets

from dnstoys.service import QueryError, Service

ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
DEFAULT_LENGTH = 21

_INT = re.compile(r"[+-]?[0-9]+")


def _atoi_or_zero(s: str) -> int:
    if not _INT.fullmatch(s):
        return 0
    value = int(s)
    return value if -(2**63) <= value < 2**63 else 0


def generate(alphabet: str, length: int) -> str:
    """Return a random string of ``length`` characters drawn from ``alphabet``."""
    if not alphabet or len(alphabet) > 255:
        raise ValueError("alphabet must not be empty and contain no more than 255 chars")
    if length < 1:
        raise ValueError("size must be positive integer")
    return "".join(secrets.choice(alphabet) for _ in range(length))


class NanoID(Service):
    """Answers ``<count>.<length>`` with that many NanoIDs of that length."""

    def __init__(self, max_results: int, max_length: int) -> None:
        self.max_results = max(max_results, 1)
        self.max_length = max(max_length, 1)

    def query(self, q: str) -> list[str]:
        parts = q.split(".")
        num, length = 1, DEFAULT_LENGTH
        if len(parts) > 1:
            num = _atoi_or_zero(parts[0])
            length = _atoi_or_zero(parts[1])

        if not 1 <= num <= self.max_results:
            raise QueryError(f"provide 1-{self.max_results}.nanoid")
        if not 1 <= length <= self.max_length:
            raise QueryError(f"provide length 1-{self.max_length}.nanoid")

        return [f'{q} 1 TXT "{generate(ALPHABET, length)}"' for _ in range(num)]

    def dump(self) -> bytes | None:
        return None