"""Spelling out numbers in English words."""

from __future__ import annotations

import math
from decimal import Decimal

from dnstoys.service import QueryError, Service

TTL = 900

ONES = (
    "zero", "one", "two", "three", "four",
    "five", "six", "seven", "eight", "nine",
    "ten", "eleven", "twelve", "thirteen", "fourteen",
    "fifteen", "sixteen", "seventeen", "eighteen", "nineteen",
)
TENS = ("", "", "twenty", "thirty", "forty", "fifty", "sixty", "seventy", "eighty", "ninety")
BIG = ("", "thousand", "million", "billion", "trillion", "quadrillion", "quintillion")

_DIGITS = frozenset("0123456789")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def _group_words(n: int) -> list[str]:
    words = []
    hundreds, n = divmod(n, 100)
    if hundreds:
        words += [ONES[hundreds], "hundred"]
    if n >= 20:
        words.append(TENS[n // 10])
        n %= 10
    if n > 0:
        words.append(ONES[n])
    return words


def num2words(number: int) -> str:
    """Spell out an integer, grouping thousands with commas."""
    if number == 0:
        return ONES[0]

    words = []
    if number < 0:
        words.append("minus")
        number = -number

    groups = []
    while number >= 1:
        number, rest = divmod(number, 1000)
        groups.append(rest)

    for scale in reversed(range(len(groups))):
        group = groups[scale]
        if group == 0:
            continue
        words += _group_words(group)
        if 0 < scale < len(BIG):
            words.append(BIG[scale] + ",")

    return " ".join(words)


def _decimal_words(digits: str) -> str:
    return "".join(" " + ONES[int(c)] for c in digits)


def _parse_float(q: str) -> float:
    if not q or "_" in q or q != q.strip() or not q.isascii():
        raise QueryError("invalid number.")
    try:
        value = float(q)
    except ValueError:
        raise QueryError("invalid number.") from None
    if not math.isfinite(value) or not _INT64_MIN <= value <= _INT64_MAX:
        raise QueryError("invalid number.")
    return value


def _format_g(x: float) -> str:
    """Format a float in the shortest %g form, switching to exponents at 1e+06."""
    if x == 0:
        return "-0" if math.copysign(1.0, x) < 0 else "0"

    sign, digit_tuple, exponent = Decimal(repr(x)).normalize().as_tuple()
    digits = "".join(map(str, digit_tuple))
    prefix = "-" if sign else ""
    nd = len(digits)
    dp = nd + exponent
    exp = dp - 1

    if exp < -4 or exp >= 6:
        mantissa = digits[0] + ("." + digits[1:] if nd > 1 else "")
        exp_sign = "-" if exp < 0 else "+"
        return f"{prefix}{mantissa}e{exp_sign}{abs(exp):02d}"

    if dp <= 0:
        body = "0." + "0" * -dp + digits
    elif dp >= nd:
        body = digits + "0" * (dp - nd)
    else:
        body = digits[:dp] + "." + digits[dp:]
    return prefix + body


class Num2Words(Service):
    """Answers a number with its spelling in words."""

    def query(self, q: str) -> list[str]:
        num = _parse_float(q)
        words = num2words(int(num))

        dot = q.find(".")
        if dot >= 0:
            if dot + 2 > len(q):
                raise QueryError("invalid number.")
            fraction = q[dot + 1] + q[dot + 2:].rstrip("0")
            if not set(fraction) <= _DIGITS:
                raise QueryError("invalid number.")
            words += " Point" + _decimal_words(fraction)

        return [f'{q} {TTL} TXT "{_format_g(num)} = {words}"']

    def dump(self) -> bytes | None:
        return None