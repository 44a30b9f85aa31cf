"""Lookup of vitamin names and food sources."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from dnstoys.service import Service


@dataclass(frozen=True)
class Vitamin:
    """Names and food sources of one vitamin."""

    common_name: str = ""
    scientific_name: str = ""
    sources: tuple[str, ...] = field(default_factory=tuple)


def _vitamin_from_json(obj: object) -> Vitamin:
    if obj is None:
        return Vitamin()
    if not isinstance(obj, dict):
        raise ValueError("vitamin entry must be an object")
    sources = obj.get("sources") or []
    if not isinstance(sources, list) or not all(isinstance(s, str) for s in sources):
        raise ValueError("sources must be a list of strings")
    return Vitamin(
        common_name=str(obj.get("common_name", "")),
        scientific_name=str(obj.get("scientific_name", "")),
        sources=tuple(sources),
    )


class VitaminStore(Service):
    """Answers a vitamin name such as ``b12`` with its names and sources."""

    def __init__(self, data: Mapping[str, Vitamin]) -> None:
        self.data = dict(data)

    @classmethod
    def from_file(cls, path: str | Path) -> VitaminStore:
        """Load vitamins from a JSON object keyed by upper case vitamin name."""
        with open(path, encoding="utf-8") as f:
            content = f.read()
        try:
            raw = json.loads(content)
            if not isinstance(raw, dict):
                raise ValueError("expected a JSON object")
            data = {key: _vitamin_from_json(value) for key, value in raw.items()}
        except ValueError as e:
            raise ValueError(f"error unmarshalling the {path} data: {e}") from e
        return cls(data)

    def query(self, q: str) -> list[str]:
        vitamin = self.data.get(q.upper())
        if vitamin is None:
            return [f'{q}.vitamin. 1 IN TXT "Vitamin {q} not found"']
        return [
            f'{q}.vitamin. 1 IN TXT "Common name: {vitamin.common_name}"',
            f'{q}.vitamin. 1 IN TXT "Scientific name: {vitamin.scientific_name}"',
            f'{q}.vitamin. 1 IN TXT "Sources: {", ".join(vitamin.sources)}"',
        ]

    def dump(self) -> bytes | None:
        return None