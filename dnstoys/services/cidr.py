"""Usable address range of an IP prefix in CIDR notation."""

from __future__ import annotations

import ipaddress

from dnstoys.service import QueryError, Service

TTL = 900


class CIDR(Service):
    """Answers a CIDR prefix with its first and last usable address and size."""

    def query(self, q: str) -> list[str]:
        _, sep, prefix = q.partition("/")
        if not sep or not (prefix.isascii() and prefix.isdigit()):
            raise QueryError("invalid cidr notation.")
        try:
            network = ipaddress.ip_network(q, strict=False)
        except ValueError:
            raise QueryError("invalid cidr notation.") from None

        first = network.network_address
        last = network.broadcast_address
        # The network and broadcast addresses are unusable, except on
        # point-to-point (/31) and single host (/32) IPv4 prefixes.
        if network.version == 4 and network.prefixlen < 31:
            first += 1
            last -= 1

        return [f'{q} {TTL} TXT "{first}" "{last}" "{network.num_addresses}"']

    def dump(self) -> bytes | None:
        return None