import re
import uuid

import pytest

from dnstoys.service import QueryError
from dnstoys.services.uuidgen import UUIDGen

_RECORD = re.compile(r'^(.*) 1 TXT "([0-9a-f-]+)"$')


def _ids(records, q):
    out = []
    for record in records:
        match = _RECORD.match(record)
        assert match is not None
        assert match.group(1) == q
        out.append(uuid.UUID(match.group(2)))
    return out


def test_generates_requested_count_of_v4_uuids():
    ids = _ids(UUIDGen(5).query("3"), "3")
    assert len(ids) == 3
    assert all(u.version == 4 for u in ids)
    assert len(set(ids)) == 3


def test_default_query_gives_one():
    assert len(_ids(UUIDGen(5).query(".uuid"), ".uuid")) == 1


def test_max_results_is_inclusive():
    assert len(UUIDGen(5).query("5")) == 5


@pytest.mark.parametrize("q", ["0", "6", "abc", "-1", "uuid."])
def test_out_of_range(q):
    with pytest.raises(QueryError, match=r"provide 1-5\.uuid"):
        UUIDGen(5).query(q)


def test_max_results_at_least_one():
    gen = UUIDGen(0)
    assert len(gen.query("1")) == 1
    with pytest.raises(QueryError, match=r"provide 1-1\.uuid"):
        gen.query("2")


def test_dump_is_empty():
    assert UUIDGen(3).dump() is None