"""Configuration, service wiring and the UDP DNS server."""

from __future__ import annotations

import argparse
import logging
import re
import signal
import socket
import socketserver
import sys
import tomllib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any

import dns.exception
import dns.message

from dnstoys.geo import Geo
from dnstoys.handlers import Resolver
from dnstoys.service import Service
from dnstoys.services.aerial import Aerial
from dnstoys.services.base import Base
from dnstoys.services.cidr import CIDR
from dnstoys.services.coin import Coin
from dnstoys.services.dice import Dice
from dnstoys.services.digipin import Digipin
from dnstoys.services.epoch import Epoch
from dnstoys.services.excuse import Excuse
from dnstoys.services.fx import FX
from dnstoys.services.ifsc import IFSC
from dnstoys.services.nanoid import NanoID
from dnstoys.services.num2words import Num2Words
from dnstoys.services.randnum import Random
from dnstoys.services.sudoku import Sudoku
from dnstoys.services.timezones import Timezones
from dnstoys.services.units import Units
from dnstoys.services.uuidgen import UUIDGen
from dnstoys.services.vitamin import VitaminStore
from dnstoys.services.weather import Options, Weather

log = logging.getLogger(__name__)

# Signal 31 saves snapshots without shutting the server down.
_SNAPSHOT_ONLY_SIGNAL = 31
_SHUTDOWN_SIGNALS = ("SIGTERM", "SIGHUP", "SIGQUIT", "SIGINT")

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_TRUE = {"1", "t", "true"}


def _parse_duration(value: Any) -> timedelta:
    """Parse a duration such as ``1h30m`` or ``500ms``; bare numbers are nanoseconds."""
    if isinstance(value, bool):
        raise ValueError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return timedelta(seconds=value * 1e-9)
    text = str(value).strip()
    sign = 1.0
    if text[:1] in "+-" and text:
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    if text == "0":
        return timedelta(0)
    pos = 0
    total = 0.0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if match is None:
            raise ValueError(f"invalid duration: {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if not text:
        raise ValueError(f"invalid duration: {value!r}")
    return timedelta(seconds=sign * total)


def _merge(into: dict, new: Mapping) -> None:
    for key, value in new.items():
        if isinstance(value, Mapping) and isinstance(into.get(key), dict):
            _merge(into[key], value)
        elif isinstance(value, Mapping):
            into[key] = {}
            _merge(into[key], value)
        else:
            into[key] = value


@dataclass
class Config:
    """Nested configuration values addressed by dotted keys such as ``server.domain``."""

    data: dict = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value at a dotted key, or ``default`` if it is not set."""
        node: Any = self.data
        for part in key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return default
            node = node[part]
        return node

    def _bool(self, key: str) -> bool:
        value = self.get(key, False)
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        if isinstance(value, str):
            return value.strip().lower() in _TRUE
        return False

    def _int(self, key: str) -> int:
        value = self.get(key, 0)
        try:
            return int(value)
        except (TypeError, ValueError):
            return 0

    def _require(self, key: str) -> Any:
        value = self.get(key)
        if value is None or value == "" or value == 0:
            raise ValueError(f"missing config value: {key}")
        return value

    def _require_str(self, key: str) -> str:
        return str(self._require(key))

    def _require_int(self, key: str) -> int:
        value = self._int(key)
        if value == 0:
            raise ValueError(f"missing config value: {key}")
        return value

    def _require_duration(self, key: str) -> timedelta:
        value = _parse_duration(self._require(key))
        if not value:
            raise ValueError(f"missing config value: {key}")
        return value


def load_config(paths: Iterable[str | Path]) -> Config:
    """Load and merge TOML files in order; unreadable files are logged and skipped."""
    config = Config()
    for path in paths:
        log.info("reading config: %s", path)
        try:
            with open(path, "rb") as f:
                _merge(config.data, tomllib.load(f))
        except (OSError, tomllib.TOMLDecodeError) as e:
            log.error("error reading config: %s", e)
    return config


def load_snapshot(config: Config, name: str) -> bytes | None:
    """Return a service's saved snapshot if snapshots are enabled and one exists."""
    if not config._bool(name + ".snapshot_enabled"):
        return None
    path = config._require_str(name + ".snapshot_file")
    try:
        return Path(path).read_bytes()
    except OSError:
        return None


def save_snapshots(resolver: Resolver, config: Config) -> list[str]:
    """Write the snapshot of every service that has snapshots enabled; return the paths."""
    written: list[str] = []
    for name, service in resolver.services.items():
        if not config._bool(name + ".enabled") or not config._bool(name + ".snapshot_enabled"):
            continue
        try:
            blob = service.dump()
        except Exception as e:  # a failing dump must not stop the others
            log.error("error generating %s snapshot: %s", name, e)
            continue
        if blob is None:
            continue
        path = config._require_str(name + ".snapshot_file")
        log.info("saving %s snapshot to %s", name, path)
        try:
            Path(path).write_bytes(blob)
        except OSError as e:
            log.error("error writing %s snapshot: %s", name, e)
            continue
        written.append(path)
    return written


def _restore(service: FX | Weather, config: Config, name: str) -> None:
    blob = load_snapshot(config, name)
    if blob is None:
        return
    try:
        service.load(blob)
    except ValueError as e:
        log.error("error reading %s snapshot: %s", name, e)


def build_resolver(config: Config) -> Resolver:
    """Create a resolver with every service the configuration enables."""
    domain = config._require_str("server.domain")
    resolver = Resolver(domain)
    enabled = config._bool

    geo: Geo | None = None
    if enabled("timezones.enabled") or enabled("weather.enabled"):
        path = config._require_str("timezones.geo_filepath")
        log.info("reading geo locations from %s", path)
        geo = Geo.from_file(path)
        log.info("%d geo location names loaded", len(geo))

    if enabled("timezones.enabled"):
        resolver.register("time", Timezones(geo))
        resolver.add_help("get time for a city", "dig mumbai.time @%s")

    if enabled("fx.enabled"):
        fx = FX(config._require_duration("fx.refresh_interval"))
        _restore(fx, config, "fx")
        resolver.register("fx", fx)
        resolver.add_help("convert currency rates", "dig 99USD-INR.fx @%s")

    if enabled("ip.enabled"):
        resolver.enable_ip()
        resolver.add_help("get your host's requesting IP.", "dig ip @%s")

    if enabled("weather.enabled"):
        weather = Weather(
            Options(
                forecast_interval=config._require_duration("weather.forecast_interval"),
                max_entries=config._require_int("weather.max_entries"),
                cache_ttl=config._require_duration("weather.cache_ttl"),
                req_timeout=3.0,
                user_agent=domain,
            ),
            geo,
        )
        _restore(weather, config, "weather")
        resolver.register("weather", weather)
        resolver.add_help("get weather forecast for a city.", "dig berlin.weather @%s")

    if enabled("units.enabled"):
        resolver.register("unit", Units.from_file(config._require_str("units.file")))
        resolver.add_help("convert between units.", "dig 42km-cm.unit @%s")

    if enabled("num2words.enabled"):
        resolver.register("words", Num2Words())
        resolver.add_help("convert numbers to words.", "dig 123456.words @%s")

    if enabled("cidr.enabled"):
        resolver.register("cidr", CIDR())
        resolver.add_help("convert cidr to ip range.", "dig 10.100.0.0/24.cidr @%s")

    if enabled("pi.enabled"):
        resolver.enable_pi()
        resolver.add_help(
            "return digits of Pi as TXT or A or AAAA record.", "dig pi @%s"
        )

    if enabled("base.enabled"):
        resolver.register("base", Base())
        resolver.add_help(
            "convert numbers from one base to another", "dig 100dec-hex.base @%s"
        )

    if enabled("dice.enabled"):
        resolver.register("dice", Dice())
        resolver.add_help("roll dice", "dig 1d6.dice @%s")

    if enabled("rand.enabled"):
        resolver.register("rand", Random())
        resolver.add_help("generate random numbers", "dig 1-100.rand @%s")

    if enabled("coin.enabled"):
        resolver.register("coin", Coin())
        resolver.add_help("toss coin", "dig 2.coin @%s")

    if enabled("epoch.enabled"):
        resolver.register("epoch", Epoch(enabled("epoch.send_local_time")))
        resolver.add_help(
            "convert epoch / UNIX time to human readable time.", "dig 784783800.epoch @%s"
        )

    if enabled("aerial.enabled"):
        resolver.register("aerial", Aerial())
        resolver.add_help(
            "get aerial distance between lat lng pair",
            "dig A12.9352,77.6245/12.9698,77.7500.aerial @%s",
        )

    if enabled("uuid.enabled"):
        resolver.register("uuid", UUIDGen(config._int("uuid.max_results")))
        resolver.add_help("generate random UUID-v4s", "dig 2.uuid @%s")

    if enabled("sudoku.enabled"):
        resolver.register("sudoku", Sudoku())
        resolver.add_help(
            "solve a sudoku puzzle",
            "dig 002840003.076000000.100006050.030080000.007503200."
            "000020010.080100004.000000730.700064500.sudoku @%s",
        )

    if enabled("excuse.enabled"):
        resolver.register("excuse", Excuse.from_file(config._require_str("excuse.file")))
        resolver.add_help("return a developer excuse", "dig excuse @%s")

    if enabled("nanoid.enabled"):
        resolver.register(
            "nanoid",
            NanoID(
                config._require_int("nanoid.max_results"),
                config._require_int("nanoid.max_length"),
            ),
        )
        resolver.add_help("generate random NanoIDs", "dig 2.10.nanoid @%s")

    if enabled("ifsc.enabled"):
        resolver.register("ifsc", IFSC.from_dir(config._require_str("ifsc.data_path")))
        resolver.add_help(
            "lookup (Indian) bank details by IFSC code", "dig ABNA0000001.ifsc @%s"
        )

    if enabled("vitamin.enabled"):
        resolver.register(
            "vitamin", VitaminStore.from_file(config._require_str("vitamin.file"))
        )
        resolver.add_help(
            "get the common name, scientific name, and food sources for a vitamin",
            "dig b12.vitamin @%s",
        )

    if enabled("digipin.enabled"):
        resolver.register("digipin", Digipin())
        resolver.add_help(
            "encode lat,lng to digipin or decode digipin to lat,lng",
            "dig 28.6139,77.2090.digipin @%s",
        )

    return resolver


class _DNSHandler(socketserver.BaseRequestHandler):
    def handle(self) -> None:
        data, sock = self.request
        try:
            request = dns.message.from_wire(data)
        except dns.exception.DNSException:
            return
        response = self.server.resolver.handle(request, self.client_address)
        if response is None:
            return
        try:
            wire = response.to_wire()
        except dns.exception.DNSException as e:
            log.error("error encoding response: %s", e)
            return
        sock.sendto(wire, self.client_address)


class _UDPServer(socketserver.ThreadingUDPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], resolver: Resolver) -> None:
        self.resolver = resolver
        super().__init__(address, _DNSHandler)


class _UDPServer6(_UDPServer):
    address_family = socket.AF_INET6


def _split_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"invalid address {address!r}: missing port")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        return host, int(port)
    except ValueError:
        raise ValueError(f"invalid address {address!r}: bad port") from None


def serve(resolver: Resolver, address: str) -> None:
    """Answer DNS queries over UDP on ``host:port`` until interrupted."""
    host, port = _split_address(address)
    server_cls = _UDPServer6 if ":" in host else _UDPServer
    with server_cls((host, port), resolver) as server:
        log.info("listening on %s", address)
        server.serve_forever()


def _start_background(resolver: Resolver) -> None:
    for service in resolver.services.values():
        if isinstance(service, (FX, Weather)):
            service.start()


def _install_signal_handlers(resolver: Resolver, config: Config) -> None:
    def on_signal(signum: int, frame: object) -> None:
        log.info("received SIGNAL: `%s`", signal.Signals(signum).name)
        save_snapshots(resolver, config)
        if signum != _SNAPSHOT_ONLY_SIGNAL:
            raise SystemExit(0)

    signals = [getattr(signal, name, None) for name in _SHUTDOWN_SIGNALS]
    try:
        signals.append(signal.Signals(_SNAPSHOT_ONLY_SIGNAL))
    except ValueError:
        pass
    for sig in signals:
        if sig is None:
            continue
        try:
            signal.signal(sig, on_signal)
        except (OSError, ValueError):
            log.warning("cannot handle signal %s", sig)


def _build_string() -> str:
    try:
        return version("dnstoys")
    except PackageNotFoundError:
        return "unknown"


def _config_paths(values: list[str] | None) -> list[str]:
    if not values:
        return ["config.toml"]
    return [p for value in values for p in value.split(",") if p]


def main(argv: list[str] | None = None) -> int:
    """Run the DNS server."""
    parser = argparse.ArgumentParser(prog="dnstoys")
    parser.add_argument(
        "--config",
        action="append",
        help="path to one or more TOML config files to load in order",
    )
    parser.add_argument("--version", action="store_true", help="show build version")
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    if args.version:
        print(_build_string())
        return 0

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(filename)s:%(lineno)d: %(message)s",
    )

    config = load_config(_config_paths(args.config))
    try:
        resolver = build_resolver(config)
        address = config._require_str("server.address")
    except (OSError, ValueError) as e:
        log.error("error initializing: %s", e)
        return 1

    _start_background(resolver)
    _install_signal_handlers(resolver, config)

    try:
        serve(resolver, address)
    except (OSError, ValueError) as e:
        log.error("error starting server: %s", e)
        return 1
    return 0