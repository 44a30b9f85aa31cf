"""Conversion of numbers between hex, decimal, octal and binary."""

from __future__ import annotations

import re

from dnstoys.service import QueryError, Service

TTL = 900

_QUERY = re.compile(r"([0-9a-f.]+)([a-z]{3})-([a-z]{3})")
_SYSTEMS = {
    "hex": (16, "x"),
    "dec": (10, "d"),
    "oct": (8, "o"),
    "bin": (2, "b"),
}
_DIGITS = "0123456789abcdef"
_INT64_MAX = 2**63 - 1


def _parse(digits: str, base: int) -> int:
    allowed = _DIGITS[:base]
    if not digits or any(c not in allowed for c in digits):
        raise QueryError("invalid number.")
    value = int(digits, base)
    if value > _INT64_MAX:
        raise QueryError("invalid number.")
    return value


class Base(Service):
    """Answers ``<number><from>-<to>`` with the number in the other base."""

    def query(self, q: str) -> list[str]:
        q = q.lower()
        match = _QUERY.search(q)
        if match is None:
            raise QueryError("invalid base query.")
        number, from_name, to_name = match.groups()

        try:
            from_base, _ = _SYSTEMS[from_name]
            _, to_spec = _SYSTEMS[to_name]
        except KeyError:
            raise QueryError(
                "invalid number system; must be one of hex, dec, oct, bin."
            ) from None

        result = format(_parse(number, from_base), to_spec)
        return [f'{q} {TTL} TXT "{number} {from_name} = {result} {to_name}"']

    def dump(self) -> bytes | None:
        return None