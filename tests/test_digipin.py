import pytest

from dnstoys.service import QueryError
from dnstoys.services.digipin import GRID, Digipin, decode, encode

POINTS = [
    (28.6139, 77.2090),
    (12.9716, 77.5946),
    (19.0760, 72.8777),
    (38.4, 99.4),
    (2.6, 63.6),
]

GRID_CHARS = {ch for row in GRID for ch in row}


@pytest.mark.parametrize("lat,lon", POINTS)
def test_round_trip_lands_near_the_point(lat, lon):
    dlat, dlon = decode(encode(lat, lon))
    assert abs(dlat - lat) < 1e-4
    assert abs(dlon - lon) < 1e-4


@pytest.mark.parametrize("lat,lon", POINTS)
def test_encoded_shape(lat, lon):
    pin = encode(lat, lon)
    assert len(pin) == 12
    assert pin[3] == "-" and pin[7] == "-"
    assert set(pin.replace("-", "")) <= GRID_CHARS


def test_south_west_corner():
    assert encode(2.5, 63.5) == "LLL-LLL-LLLL"


def test_decode_ignores_dashes():
    pin = encode(28.6139, 77.2090)
    assert decode(pin) == decode(pin.replace("-", ""))


@pytest.mark.parametrize(
    "lat,lon,message",
    [
        (1.0, 70.0, "latitude out of range"),
        (40.0, 70.0, "latitude out of range"),
        (20.0, 100.0, "longitude out of range"),
        (20.0, 60.0, "longitude out of range"),
    ],
)
def test_encode_out_of_range(lat, lon, message):
    with pytest.raises(QueryError, match=message):
        encode(lat, lon)


def test_decode_wrong_length():
    with pytest.raises(QueryError, match="invalid digipin format"):
        decode("FC9")


def test_decode_invalid_character():
    with pytest.raises(QueryError, match="invalid character in DIGIPIN: A"):
        decode("ABCDEFGHIJ")


def test_query_encodes_coordinates():
    q = "28.6139,77.2090"
    assert Digipin().query(q) == [f'{q} 900 TXT "{encode(28.6139, 77.2090)}"']


def test_query_decodes_lowercase_pin():
    pin = encode(12.9716, 77.5946)
    lat, lon = decode(pin)
    assert Digipin().query(pin.lower()) == [f'{pin} 900 TXT "{lat:.6f},{lon:.6f}"']


def test_query_out_of_range_coordinates():
    with pytest.raises(QueryError, match="latitude out of range"):
        Digipin().query("1,2")


@pytest.mark.parametrize("q", ["hello", "1.5", "", "28.6,77.2,1"])
def test_query_invalid(q):
    with pytest.raises(QueryError, match="invalid digipin format"):
        Digipin().query(q)


def test_dump_is_empty():
    assert Digipin().dump() is None