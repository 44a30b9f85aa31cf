"""Dice rolls in NdS/M notation."""

from __future__ import annotations

import re
import secrets

from dnstoys.service import QueryError, Service

_QUERY = re.compile(r"([0-9]+)[dD]([0-9]+)(?:/([0-9]+))?")
_INT64_MAX = 2**63 - 1


def _parse(s: str) -> int:
    value = int(s)
    if value > _INT64_MAX:
        raise QueryError("invalid dice query.")
    return value


def roll(dice: int, sides: int, modifier: int) -> tuple[list[int], int]:
    """Roll ``dice`` dice of ``sides`` sides; return the rolls and their total plus modifier."""
    if dice > 0 and sides < 1:
        raise ValueError("dice must have at least one side")
    results = [secrets.randbelow(sides) + 1 for _ in range(dice)]
    return results, sum(results) + modifier


class Dice(Service):
    """Answers ``<dice>d<sides>[/<modifier>]`` with the rolls and their total."""

    def query(self, q: str) -> list[str]:
        match = _QUERY.search(q)
        if match is None:
            raise QueryError("invalid dice query.")

        dice = _parse(match.group(1))
        sides = _parse(match.group(2))
        modifier = _parse(match.group(3)) if match.group(3) else 0

        try:
            results, total = roll(dice, sides, modifier)
        except ValueError:
            raise QueryError("Can't generate random numbers") from None

        rolled = ", ".join(str(r) for r in results)
        return [
            f'{q} 1 TXT "rolled = [{rolled}]"',
            f'{q} 1 TXT "total = {total}"',
        ]

    def dump(self) -> bytes | None:
        return None