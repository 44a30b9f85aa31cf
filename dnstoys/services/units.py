"""Conversion between physical units of the same kind."""

from __future__ import annotations

import json
import math
import re
import struct
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dnstoys.service import QueryError, Service

TTL = 900

_QUERY = re.compile(r"([0-9.]+)([a-z]{1,6})-([a-z]{1,6})", re.IGNORECASE | re.ASCII)


@dataclass(frozen=True)
class Unit:
    """A unit and its value relative to the other units of its group."""

    symbol: str
    name: str
    value: float


@dataclass(frozen=True)
class _Group:
    name: str
    base_symbol: str


def _parse_float32(s: str) -> float:
    try:
        value = float(s)
        return struct.unpack("f", struct.pack("f", value))[0]
    except (ValueError, OverflowError):
        raise QueryError("invalid number.") from None


def _fdiv(a: float, b: float) -> float:
    try:
        return a / b
    except ZeroDivisionError:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)


class Units(Service):
    """Answers ``<value><from>-<to>`` with the value converted between units."""

    def __init__(self, data: Mapping[str, Mapping[str, Any]]) -> None:
        self._units: dict[str, dict[str, Unit]] = {}
        self._symbols: dict[str, _Group] = {}

        for group_name, group in data.items():
            members: dict[str, Unit] = {}
            self._units[group_name] = members
            base_symbol = str(group.get("base_symbol", ""))
            for raw in group.get("units") or []:
                unit = Unit(
                    symbol=str(raw.get("symbol", "")),
                    name=str(raw.get("name", "")),
                    value=float(raw.get("value", 0)),
                )
                self._symbols[unit.symbol] = _Group(group_name, base_symbol)
                members[unit.symbol] = unit

        self._help = self._build_list()

    @classmethod
    def from_file(cls, path: str | Path) -> Units:
        """Load unit groups from a JSON file."""
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a JSON object of unit groups")
        return cls(data)

    def _resolve(self, symbol: str) -> tuple[_Group, str]:
        group = self._symbols.get(symbol)
        if group is not None:
            return group, symbol
        lower = symbol.lower()
        group = self._symbols.get(lower)
        if group is None:
            raise QueryError(f"unknown unit: {symbol}. 'dig unit' to see list of units.")
        return group, lower

    def query(self, q: str) -> list[str]:
        if q == "unit.":
            return list(self._help)

        match = _QUERY.search(q)
        if match is None:
            raise QueryError("invalid unit query.")

        val = _parse_float32(match.group(1))

        group, from_sym = self._resolve(match.group(2))
        from_unit = self._units[group.name][from_sym]

        to_group, to_sym = self._resolve(match.group(3))
        to_real = self._units[to_group.name][to_sym]

        to_unit = self._units[group.name].get(to_sym)
        if to_unit is None:
            raise QueryError(
                f"cannot convert {from_sym} ({from_unit.name}) to {to_sym} ({to_real.name})."
            )

        base = self._units[group.name].get(group.base_symbol)
        base_rate = base.value if base is not None else 0.0
        conv = _fdiv(_fdiv(base_rate, from_unit.value), _fdiv(base_rate, to_unit.value)) * val

        return [
            f'{q} {TTL} TXT "{val:.2f} {from_unit.name} ({from_unit.symbol}) = '
            f'{conv:.2f} {to_unit.name} ({to_unit.symbol})"'
        ]

    def dump(self) -> bytes | None:
        return None

    def unit_list(self) -> list[str]:
        """Return the help lines listing every unit, sorted by group and symbol."""
        return list(self._help)

    def _build_list(self) -> list[str]:
        return [
            f'unit. {TTL} "{group}" "{unit.symbol} ({unit.name})"'
            for group in sorted(self._units)
            for unit in sorted(self._units[group].values(), key=lambda u: u.symbol)
        ]