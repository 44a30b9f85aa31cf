"""Lookup of geographic locations loaded from a geonames.org dump."""

from __future__ import annotations

import csv
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from zoneinfo import ZoneInfo

_CLEAN = re.compile(r"[^a-z/]+")
_FIELD_COUNT = 19


@dataclass(frozen=True)
class Location:
    """A named place with its coordinates and time zone."""

    id: str
    name: str
    lat: float
    lon: float
    timezone: str
    country: str
    population: int
    zone: ZoneInfo = field(compare=False, repr=False)


class Geo:
    """An index of locations by normalised name."""

    def __init__(self, locations: Iterable[Location]) -> None:
        locations = list(locations)
        self._index: dict[str, list[Location]] = {}
        self._count = 0

        for loc in locations:
            key = _CLEAN.sub("", loc.name.lower())
            self._index.setdefault(key, []).append(loc)
            self._count += 1

        # Cities named in time zones that are not already known.
        for loc in locations:
            parts = loc.timezone.split("/")
            if len(parts) < 2:
                continue
            self._index.setdefault(_CLEAN.sub("", parts[1]), [loc])

        # Bigger cities are more likely to be the ones asked for.
        for locs in self._index.values():
            locs.sort(key=lambda loc: loc.population, reverse=True)

    @classmethod
    def from_file(cls, path: str | Path) -> Geo:
        """Load a geonames.org tab separated dump."""
        return cls(read_locations(path))

    def query(self, q: str) -> list[Location]:
        """Return the locations matching a name, optionally suffixed with /CC."""
        country = ""
        parts = q.split("/")
        if len(parts) == 2 and len(parts[1]) == 2:
            q = parts[0]
            country = parts[1].upper()

        matches = self._index.get(_CLEAN.sub("", q.lower()), [])
        if country:
            return [loc for loc in matches if loc.country == country]
        return list(matches)

    def __len__(self) -> int:
        return self._count


def _to_float(s: str) -> float:
    try:
        return float(s)
    except ValueError:
        return 0.0


def _to_int(s: str) -> int:
    try:
        return int(s)
    except ValueError:
        return 0


def read_locations(path: str | Path) -> list[Location]:
    """Parse a geonames.org dump, skipping rows whose time zone is unknown."""
    out: list[Location] = []
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.reader(f, delimiter="\t")
        expected: int | None = None
        for row in reader:
            if not row:
                continue
            if expected is None:
                expected = len(row)
            elif len(row) != expected:
                raise ValueError(
                    f"{path}: record on line {reader.line_num}: wrong number of fields"
                )
            if len(row) != _FIELD_COUNT:
                continue

            try:
                zone = ZoneInfo(row[17])
            except (KeyError, ValueError, OSError):
                continue

            out.append(
                Location(
                    id=row[0],
                    name=row[2].split("(")[0].strip(),
                    lat=_to_float(row[4]),
                    lon=_to_float(row[5]),
                    timezone=row[17],
                    country=row[8],
                    population=_to_int(row[14]),
                    zone=zone,
                )
            )
    return out