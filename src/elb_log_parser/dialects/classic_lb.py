"""
AWS Classic Load Balancer access-log dialect.

Entry format (18 fields):
https://docs.aws.amazon.com/elasticloadbalancing/latest/classic/access-log-collection.html#access-log-entry-syntax

    timestamp elb client:port backend:port request_processing_time
    backend_processing_time response_processing_time elb_status_code
    backend_status_code received_bytes sent_bytes "request" "user_agent"
    ssl_cipher ssl_protocol

Classic LB logs are delivered uncompressed as ``*.log``.
"""

from ..grammar import alt, capture, lit, one_of, opt, plus, repeat, seq, star
from ..grammar.fields import (
    BYTE_COUNT,
    DIGIT,
    HTTP_VERSION,
    IP_PORT_OR_DASH,
    IPV4,
    PORT,
    PROCESSING_TIME,
    SPACE,
    SSL_CIPHER,
    SSL_PROTOCOL,
    STATUS_CODE,
    STRING_BODY,
    TIMESTAMP,
    quoted,
    space_separated,
)
from .base import DialectParser, Record
from .registry import DialectRegistry

# Letters, digits and inner hyphens: "my-loadbalancer"
LOAD_BALANCER_NAME = seq(
    one_of(b"a-zA-Z0-9"),
    opt(seq(star(one_of(b"a-zA-Z0-9-")), one_of(b"a-zA-Z0-9"))),
)
BACKEND_STATUS_CODE = alt(repeat(DIGIT, 1, 3), b"-")
HTTP_METHOD = alt(b"-", plus(one_of(b"A-Z")))
# Unparseable requests are logged as "- - - " (note the trailing space)
CLASSIC_HTTP_VERSION = alt(b"- ", HTTP_VERSION)


class ClassicRecord(Record):
    FIELDS = (
        "time",
        "elb",
        "client_ip",
        "client_port",
        "backend_ip_port",
        "request_processing_time",
        "backend_processing_time",
        "response_processing_time",
        "elb_status_code",
        "backend_status_code",
        "received_bytes",
        "sent_bytes",
        "http_method",
        "url",
        "http_version",
        "user_agent",
        "ssl_cipher",
        "ssl_protocol",
    )


CLASSIC_LINE = space_separated(
    capture("time", TIMESTAMP),
    capture("elb", LOAD_BALANCER_NAME),
    seq(capture("client_ip", IPV4), lit(b":"), capture("client_port", PORT)),
    capture("backend_ip_port", IP_PORT_OR_DASH),
    capture("request_processing_time", PROCESSING_TIME),
    capture("backend_processing_time", PROCESSING_TIME),
    capture("response_processing_time", PROCESSING_TIME),
    capture("elb_status_code", STATUS_CODE),
    capture("backend_status_code", BACKEND_STATUS_CODE),
    capture("received_bytes", BYTE_COUNT),
    capture("sent_bytes", BYTE_COUNT),
    quoted(
        seq(
            capture("http_method", HTTP_METHOD),
            SPACE,
            capture("url", STRING_BODY),
            SPACE,
            capture("http_version", CLASSIC_HTTP_VERSION),
        )
    ),
    quoted(capture("user_agent", STRING_BODY)),
    capture("ssl_cipher", SSL_CIPHER),
    capture("ssl_protocol", SSL_PROTOCOL),
)


@DialectRegistry.register("classic-lb")
class ClassicLBParser(DialectParser):
    """Parser for Classic Load Balancer access logs."""

    name = "classic-lb"
    file_suffix = ".log"
    compressed = False
    record_class = ClassicRecord
    LINE = CLASSIC_LINE
