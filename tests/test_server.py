import socket
import threading
from datetime import timedelta

import dns.exception
import dns.message
import dns.query
import pytest

from dnstoys.handlers import Resolver
from dnstoys.server import (
    Config,
    build_resolver,
    load_config,
    load_snapshot,
    main,
    save_snapshots,
    serve,
)
from dnstoys.service import Service
from dnstoys.services.fx import FX, Rates

DOMAIN = "dns.example.com"


class _Snapshotting(Service):
    def __init__(self, blob):
        self.blob = blob

    def query(self, q):
        return [f'{q} 1 TXT "ok"']

    def dump(self):
        return self.blob


def _write(path, text):
    path.write_text(text, encoding="utf-8")
    return path


def test_config_get_nested_and_default():
    config = Config({"server": {"domain": DOMAIN, "port": 53}})
    assert config.get("server.domain") == DOMAIN
    assert config.get("server.port") == 53
    assert config.get("server.missing", "fallback") == "fallback"
    assert config.get("nothing.at.all") is None


def test_load_config_merges_in_order_and_skips_missing(tmp_path):
    first = _write(
        tmp_path / "a.toml",
        '[server]\ndomain = "first.example.com"\naddress = ":53"\n',
    )
    second = _write(tmp_path / "b.toml", '[server]\ndomain = "second.example.com"\n')
    config = load_config([first, tmp_path / "missing.toml", second])
    assert config.get("server.domain") == "second.example.com"
    assert config.get("server.address") == ":53"


def test_build_resolver_registers_enabled_services_in_order():
    config = Config(
        {
            "server": {"domain": DOMAIN},
            "base": {"enabled": True},
            "cidr": {"enabled": True},
            "pi": {"enabled": True},
            "coin": {"enabled": False},
        }
    )
    resolver = build_resolver(config)
    assert set(resolver.services) == {"base", "cidr"}
    texts = [rr.to_text() for rr in resolver.help]
    assert len(texts) == 3
    assert "convert cidr to ip range." in texts[0]
    assert "return digits of Pi as TXT or A or AAAA record." in texts[1]
    assert "convert numbers from one base to another" in texts[2]
    assert all(f"@{DOMAIN}" in t for t in texts)


def test_built_resolver_answers_queries():
    resolver = build_resolver(
        Config({"server": {"domain": DOMAIN}, "base": {"enabled": True}})
    )
    request = dns.message.make_query("100dec-hex.base.", "TXT")
    response = resolver.handle(request, ("127.0.0.1", 5353))
    text = response.answer[0].to_text()
    assert "100 dec = 64 hex" in text


def test_build_resolver_requires_domain():
    with pytest.raises(ValueError):
        build_resolver(Config({"base": {"enabled": True}}))


def test_build_resolver_loads_excuses_from_file(tmp_path):
    excuses = _write(tmp_path / "excuses.txt", "# comment\n\nit works on my machine\n")
    resolver = build_resolver(
        Config(
            {
                "server": {"domain": DOMAIN},
                "excuse": {"enabled": True, "file": str(excuses)},
            }
        )
    )
    assert resolver.services["excuse"].query("excuse.") == [
        'excuse. 1 TXT "it works on my machine"'
    ]


def test_build_resolver_missing_excuse_file_raises(tmp_path):
    config = Config(
        {
            "server": {"domain": DOMAIN},
            "excuse": {"enabled": True, "file": str(tmp_path / "none.txt")},
        }
    )
    with pytest.raises(OSError):
        build_resolver(config)


def test_build_resolver_parses_fx_duration_and_restores_snapshot(tmp_path):
    source = FX(60)
    source.set_rates(Rates(base="USD", date="today", rates={"USD": 1.0, "INR": 80.0}))
    snapshot = tmp_path / "fx.snap"
    snapshot.write_bytes(source.dump())

    resolver = build_resolver(
        Config(
            {
                "server": {"domain": DOMAIN},
                "fx": {
                    "enabled": True,
                    "refresh_interval": "6h",
                    "snapshot_enabled": True,
                    "snapshot_file": str(snapshot),
                },
            }
        )
    )
    fx = resolver.services["fx"]
    assert fx.refresh_interval == timedelta(hours=6).total_seconds()
    assert fx.query("1USD-INR") == source.query("1USD-INR")


def test_load_snapshot_disabled_missing_and_present(tmp_path):
    path = tmp_path / "snap.bin"
    disabled = Config({"fx": {"snapshot_enabled": False, "snapshot_file": str(path)}})
    enabled = Config({"fx": {"snapshot_enabled": True, "snapshot_file": str(path)}})

    path.write_bytes(b"data")
    assert load_snapshot(disabled, "fx") is None
    assert load_snapshot(enabled, "fx") == b"data"

    path.unlink()
    assert load_snapshot(enabled, "fx") is None


def test_save_snapshots_writes_enabled_services_only(tmp_path):
    resolver = Resolver(DOMAIN)
    resolver.register("keep", _Snapshotting(b"kept"))
    resolver.register("off", _Snapshotting(b"ignored"))
    resolver.register("empty", _Snapshotting(None))
    config = Config(
        {
            "keep": {
                "enabled": True,
                "snapshot_enabled": True,
                "snapshot_file": str(tmp_path / "keep.bin"),
            },
            "off": {
                "enabled": True,
                "snapshot_enabled": False,
                "snapshot_file": str(tmp_path / "off.bin"),
            },
            "empty": {
                "enabled": True,
                "snapshot_enabled": True,
                "snapshot_file": str(tmp_path / "empty.bin"),
            },
        }
    )
    written = save_snapshots(resolver, config)
    assert written == [str(tmp_path / "keep.bin")]
    assert (tmp_path / "keep.bin").read_bytes() == b"kept"
    assert not (tmp_path / "off.bin").exists()
    assert not (tmp_path / "empty.bin").exists()


def test_serve_answers_over_udp():
    resolver = Resolver(DOMAIN)
    resolver.enable_pi()
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
        s.bind(("127.0.0.1", 0))
        port = s.getsockname()[1]

    thread = threading.Thread(
        target=serve, args=(resolver, f"127.0.0.1:{port}"), daemon=True
    )
    thread.start()

    query = dns.message.make_query("pi.", "A")
    response = None
    for _ in range(50):
        try:
            response = dns.query.udp(query, "127.0.0.1", port=port, timeout=0.2)
            break
        except (dns.exception.Timeout, OSError):
            continue
    assert response is not None
    assert len(response.answer) == 1
    assert response.answer[0][0].to_text() == "3.141.59.27"
    direct = resolver.handle(query, ("127.0.0.1", 5353))
    assert response.answer == direct.answer


def test_serve_rejects_address_without_port():
    with pytest.raises(ValueError):
        serve(Resolver(DOMAIN), "localhost")


def test_main_version(capsys):
    assert main(["--version"]) == 0
    out = capsys.readouterr().out
    assert len(out.strip().splitlines()) == 1


def test_main_fails_without_domain(tmp_path):
    config = _write(tmp_path / "config.toml", "[base]\nenabled = true\n")
    assert main(["--config", str(config)]) == 1