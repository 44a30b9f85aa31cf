"""Routing of DNS queries to services and building of their responses."""

from __future__ import annotations

import ipaddress
import logging
import re
from collections.abc import Callable, Iterable

import dns.exception
import dns.flags
import dns.message
import dns.name
import dns.opcode
import dns.rcode
import dns.rdata
import dns.rdataclass
import dns.rdatatype
import dns.rrset
import dns.tokenizer

from dnstoys.service import QueryError, Service

IP_TTL = 60
PI_TTL = 31536000
HELP_TTL = 86400
MAX_QUESTIONS = 5
_DEFAULT_TTL = 3600

_CLEAN = re.compile(r"[^a-zA-Z0-9/\-.:,]")
_ANSWERED = (dns.rdatatype.TXT, dns.rdatatype.A)

log = logging.getLogger(__name__)

Handler = Callable[[dns.message.Message, tuple], "dns.message.Message | None"]


def clean_query(q: str, suffix: str) -> str:
    """Trim the service suffix and drop every disallowed character."""
    return _CLEAN.sub("", q.removesuffix(suffix))


def _parse_record(text: str) -> dns.rrset.RRset:
    tok = dns.tokenizer.Tokenizer(text)
    name = tok.get_name(origin=dns.name.root)

    ttl = _DEFAULT_TTL
    rdclass = dns.rdataclass.IN
    token = tok.get()
    for _ in range(2):
        if token.is_identifier() and token.value.isdigit():
            ttl = int(token.value)
            token = tok.get()
        elif token.is_identifier():
            try:
                rdclass = dns.rdataclass.from_text(token.value)
            except dns.exception.DNSException:
                break
            token = tok.get()
    if not token.is_identifier():
        raise ValueError(f"bad record type in {text!r}")
    rdtype = dns.rdatatype.from_text(token.value)

    rdata = dns.rdata.from_text(rdclass, rdtype, tok, origin=dns.name.root, relativize=False)
    rrset = dns.rrset.RRset(name, rdclass, rdtype)
    rrset.add(rdata, ttl)
    return rrset


def make_records(answers: Iterable[str]) -> list[dns.rrset.RRset]:
    """Parse zone-file formatted records; raise ValueError on a bad one."""
    out = []
    for text in answers:
        try:
            out.append(_parse_record(text))
        except dns.exception.DNSException as e:
            raise ValueError(f"invalid record {text!r}: {e}") from e
    return out


def _error(response: dns.message.Message, message: str) -> dns.message.Message | None:
    try:
        (rrset,) = make_records([f'. 1 IN TXT "error: {message}"'])
    except ValueError as e:
        log.error("%s", e)
        return None
    response.set_rcode(dns.rcode.SERVFAIL)
    response.additional = [rrset]
    return response


class Resolver:
    """Dispatches DNS queries to registered services by name suffix."""

    def __init__(self, domain: str) -> None:
        self.domain = domain
        self.services: dict[str, Service] = {}
        self.help: list[dns.rrset.RRset] = []
        self._routes: dict[str, Handler] = {"help.": self._handle_help}

    def register(self, suffix: str, service: Service) -> None:
        """Answer queries under ``<suffix>.`` with ``service``."""
        self.services[suffix] = service
        trim = "." + suffix + "."

        def handle(request: dns.message.Message, client: tuple) -> dns.message.Message | None:
            response = dns.message.make_response(request)
            if request.opcode() != dns.opcode.QUERY:
                return response
            if len(request.question) > MAX_QUESTIONS:
                return _error(response, "too many queries.")

            out = []
            for q in request.question:
                if q.rdtype not in _ANSWERED:
                    continue
                try:
                    answers = service.query(clean_query(q.name.to_text(), trim))
                except QueryError as e:
                    return _error(response, str(e))
                try:
                    out.extend(make_records(answers))
                except ValueError as e:
                    log.error("error preparing response: %s", e)
                    return _error(response, "error preparing response.")
            response.answer = out
            return response

        self._routes[suffix + "."] = handle

    def add_help(self, description: str, example: str) -> None:
        """Add a help line; ``example`` holds a %s for the server's domain."""
        self.help.extend(
            make_records([f'help. {HELP_TTL} TXT "{description}" "{example % self.domain}"'])
        )

    def enable_ip(self) -> None:
        """Answer ``ip.`` with the client's address."""
        self._routes["ip."] = self._handle_ip

    def enable_pi(self) -> None:
        """Answer ``pi.`` with digits of pi."""
        self._routes["pi."] = self._handle_pi

    def handle(
        self, request: dns.message.Message, client_address: tuple
    ) -> dns.message.Message | None:
        """Answer a request; None means no reply is to be sent."""
        if not request.question:
            response = dns.message.make_response(request)
            response.set_rcode(dns.rcode.SERVFAIL)
            return response

        labels = request.question[0].name.to_text().lower().rstrip(".").split(".")
        for i in range(len(labels)):
            pattern = ".".join(labels[i:]) + "."
            if pattern in self._routes:
                return self._routes[pattern](request, client_address)
        return self._handle_default(request, client_address)

    def _handle_ip(self, request: dns.message.Message, client: tuple) -> dns.message.Message | None:
        response = dns.message.make_response(request)
        for q in request.question:
            if q.rdtype not in _ANSWERED:
                continue
            try:
                ip = ipaddress.ip_address(str(client[0]).split("%")[0])
            except (ValueError, IndexError):
                return _error(response, "unable to detect IP.")
            if ip.version == 6 and ip.ipv4_mapped is not None:
                ip = ip.ipv4_mapped
            response.answer.extend(make_records([f'ip. {IP_TTL} TXT "{ip}"']))
        return response

    def _handle_pi(self, request: dns.message.Message, client: tuple) -> dns.message.Message:
        records = {
            dns.rdatatype.TXT: f"pi. {PI_TTL} TXT 3.141592653589793238462643383279502884197169",
            dns.rdatatype.A: f"pi. {PI_TTL} IN A 3.141.59.27",
            dns.rdatatype.AAAA: f"pi. {PI_TTL} IN AAAA 3141:5926:5358:9793:2384:6264:3383:2795",
        }
        response = dns.message.make_response(request)
        for q in request.question:
            if q.rdtype in records:
                response.answer.extend(make_records([records[q.rdtype]]))
        return response

    def _handle_help(self, request: dns.message.Message, client: tuple) -> dns.message.Message:
        response = dns.message.make_response(request)
        response.answer = list(self.help)
        return response

    def _handle_default(
        self, request: dns.message.Message, client: tuple
    ) -> dns.message.Message | None:
        response = dns.message.make_response(request)
        return _error(response, f"unknown query. try: dig help @{self.domain}")