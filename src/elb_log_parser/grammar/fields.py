"""
Field patterns shared by the ALB and Classic LB grammars.

Field syntax follows the AWS access-log documentation:
https://docs.aws.amazon.com/elasticloadbalancing/latest/application/load-balancer-access-logs.html
https://docs.aws.amazon.com/elasticloadbalancing/latest/classic/access-log-collection.html
"""

from .patterns import Pattern, alt, lit, none_of, one_of, opt, plus, repeat, seq, star

DIGIT = one_of(b"0-9")
HEX_DIGIT = one_of(b"0-9a-f")
LETTER = one_of(b"a-zA-Z")
SPACE = lit(b" ")
QUOTE = lit(b'"')
NEWLINE = lit(b"\n")


def digits(count: int) -> Pattern:
    return repeat(DIGIT, count, count)


# 2015-05-13T23:39:43.945958Z
TIMESTAMP = seq(
    digits(4), b"-", digits(2), b"-", digits(2),
    b"T", digits(2), b":", digits(2), b":", digits(2),
    b".", digits(6), b"Z",
)

OCTET = repeat(DIGIT, 1, 3)
IPV4 = seq(OCTET, b".", OCTET, b".", OCTET, b".", OCTET)
PORT = repeat(DIGIT, 1, 5)
IP_PORT = seq(IPV4, b":", PORT)
IP_PORT_OR_DASH = alt(IP_PORT, b"-")

# "-1" means the time was not measured (connection closed, no target, ...)
PROCESSING_TIME = alt(seq(plus(DIGIT), b".", plus(DIGIT)), b"-1")
STATUS_CODE = alt(digits(3), b"-")
BYTE_COUNT = plus(DIGIT)

# Escapes inside quoted fields. An 8-digit "\xHHHHHHHH" matches as a 2-digit
# escape followed by six plain bytes, so each escape has exactly one reading.
HEX_ESCAPE = seq(b"\\x", repeat(HEX_DIGIT, 2, 2))
STRING_CHAR = alt(none_of(b'\n\\"'), b'\\"', b"\\\\", HEX_ESCAPE)
STRING_BODY = star(STRING_CHAR)

HTTP_VERSION = seq(b"HTTP/", plus(one_of(b"0-9.")))
SSL_CIPHER = plus(one_of(b"0-9A-Z-"))
SSL_PROTOCOL = alt(seq(b"TLSv", plus(one_of(b"0-9."))), b"-")


def quoted(inner: Pattern) -> Pattern:
    return seq(QUOTE, inner, QUOTE)


def space_separated(*fields: Pattern) -> Pattern:
    """Join fields with single spaces and allow one trailing newline."""
    parts: list[Pattern] = []
    for i, field in enumerate(fields):
        if i:
            parts.append(SPACE)
        parts.append(field)
    parts.append(opt(NEWLINE))
    return seq(*parts)
