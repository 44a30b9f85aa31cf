import dns.message
import dns.rcode
import dns.rdatatype
import dns.rrset
import pytest

from dnstoys.handlers import Resolver, clean_query, make_records
from dnstoys.service import QueryError, Service

CLIENT = ("192.0.2.7", 5353)


class Echo(Service):
    def query(self, q):
        if q == "bad":
            raise QueryError("nope")
        return [f'{q} 1 TXT "{q}"']


def _resolver():
    r = Resolver("dns.example.com")
    r.register("echo", Echo())
    return r


def _txt(rrset):
    return [b"".join(rd.strings).decode() for rd in rrset]


def test_clean_query():
    assert clean_query("mumbai!.time.", ".time.") == "mumbai"
    assert clean_query("a b/c:d,e.x.", ".y.") == "ab/c:d,e.x."


def test_make_records_parses_ttl_and_type():
    (rr,) = make_records(['foo. 900 TXT "a" "b"'])
    assert rr.ttl == 900
    assert rr.rdtype == dns.rdatatype.TXT
    assert [rd.strings for rd in rr] == [(b"a", b"b")]


def test_make_records_rejects_missing_type():
    with pytest.raises(ValueError):
        make_records(['unit. 900 "g" "x"'])


def test_registered_service_answers():
    resp = _resolver().handle(dns.message.make_query("hello.echo.", "TXT"), CLIENT)
    assert resp.rcode() == dns.rcode.NOERROR
    assert _txt(resp.answer[0]) == ["hello"]


def test_service_error_is_servfail():
    resp = _resolver().handle(dns.message.make_query("bad.echo.", "TXT"), CLIENT)
    assert resp.rcode() == dns.rcode.SERVFAIL
    assert _txt(resp.additional[0]) == ["error: nope"]


def test_unknown_query():
    resp = _resolver().handle(dns.message.make_query("what.", "TXT"), CLIENT)
    assert _txt(resp.additional[0]) == ["error: unknown query. try: dig help @dns.example.com"]


def test_pi_a_record():
    r = _resolver()
    r.enable_pi()
    resp = r.handle(dns.message.make_query("pi.", "A"), CLIENT)
    assert resp.answer[0][0].address == "3.141.59.27"


def test_ip_echo():
    r = _resolver()
    r.enable_ip()
    resp = r.handle(dns.message.make_query("ip.", "TXT"), CLIENT)
    assert _txt(resp.answer[0]) == [CLIENT[0]]


def test_help_lines():
    r = _resolver()
    r.add_help("roll dice", "dig 1d6.dice @%s")
    resp = r.handle(dns.message.make_query("help.", "TXT"), CLIENT)
    assert [rd.strings for rd in resp.answer[0]] == [(b"roll dice", b"dig 1d6.dice @dns.example.com")]


def test_non_txt_questions_ignored():
    resp = _resolver().handle(dns.message.make_query("hello.echo.", "MX"), CLIENT)
    assert resp.answer == []