"""Lookup of Indian bank branches by IFSC code."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, fields
from pathlib import Path

from dnstoys.service import QueryError, Service

IFSC_CODE_LEN = 11

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Branch:
    """One bank branch."""

    bank: str = ""
    ifsc: str = ""
    micr: str = ""
    branch: str = ""
    address: str = ""
    state: str = ""
    city: str = ""
    centre: str = ""
    district: str = ""


_FIELDS = tuple(f.name for f in fields(Branch))


def _branch_from_json(obj: object) -> Branch:
    if obj is None:
        return Branch()
    if not isinstance(obj, dict):
        raise ValueError("branch entry must be an object")
    lowered = {str(k).lower(): v for k, v in obj.items()}
    values = {}
    for name in _FIELDS:
        value = lowered.get(name)
        if value is None:
            continue
        if not isinstance(value, str):
            raise ValueError(f"field {name.upper()} must be a string")
        values[name] = value
    return Branch(**values)


class IFSC(Service):
    """Answers an IFSC code with the details of its branch."""

    def __init__(self, branches: Iterable[Branch]) -> None:
        self.branches = {b.ifsc: b for b in branches}

    @classmethod
    def from_dir(cls, path: str | Path) -> IFSC:
        """Load every per-bank JSON file in a directory."""
        log.info("loading IFSC data from %s", path)
        branches: list[Branch] = []
        for file in sorted(Path(path).iterdir(), key=lambda p: p.name):
            content = file.read_bytes()
            try:
                raw = json.loads(content)
                if not isinstance(raw, dict):
                    raise ValueError("expected a JSON object")
                branches.extend(_branch_from_json(v) for v in raw.values())
            except ValueError as e:
                raise ValueError(f"error unmarshalling file: {file}: {e}") from e
        return cls(branches)

    def query(self, q: str) -> list[str]:
        code = q.removesuffix(".ifsc").upper()
        length = len(code.encode("utf-8"))
        if length != IFSC_CODE_LEN:
            raise QueryError(f"invalid IFSC code length: {length}")

        b = self.branches.get(code)
        if b is None:
            return [f'{code}.ifsc. 1 IN TXT "IFSC code {code} not found"']

        return [
            f'{code}.ifsc. 1 IN TXT "{label}: {value}"'
            for label, value in (
                ("Bank", b.bank),
                ("Micr", b.micr),
                ("Branch", b.branch),
                ("Address", b.address),
                ("City", b.city),
                ("Centre", b.centre),
                ("District", b.district),
                ("State", b.state),
            )
        ]

    def dump(self) -> bytes | None:
        return None