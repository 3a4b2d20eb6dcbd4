"""
AWS Application Load Balancer (ALB) access-log dialect.

Entry format (32 space-separated fields, some quoted):
https://docs.aws.amazon.com/elasticloadbalancing/latest/application/load-balancer-access-logs.html#access-log-entry-format

Field Mapping (1-indexed as per AWS docs):
    Field 1 (type)                  -> type
    Field 2 (time)                  -> time
    Field 3 (elb)                   -> elb
    Field 4 (client:port)           -> client_ip, client_port
    Field 5 (target:port)           -> target_ip_port
    Fields 6-8 (processing times)   -> *_processing_time ("-1" kept verbatim)
    Fields 9-10 (status codes)      -> elb_status_code, target_status_code
    Fields 11-12 (byte counts)      -> received_bytes, sent_bytes
    Field 13 ("request")            -> http_method, url, http_version
    Field 14 ("user_agent")         -> user_agent (quotes included)
    Fields 15-31                    -> ssl_cipher ... classification
    Field 32 (classification_reason)-> classification_reason

ALB logs are delivered gzip-compressed as ``*.log.gz``.
"""

from ..grammar import alt, capture, lit, none_of, one_of, opt, plus, repeat, seq, star
from ..grammar.fields import (
    BYTE_COUNT,
    DIGIT,
    HTTP_VERSION,
    IP_PORT,
    IP_PORT_OR_DASH,
    IPV4,
    LETTER,
    PORT,
    PROCESSING_TIME,
    SPACE,
    SSL_CIPHER,
    SSL_PROTOCOL,
    STATUS_CODE,
    STRING_BODY,
    TIMESTAMP,
    digits,
    quoted,
    space_separated,
)
from .base import DialectParser, Record
from .registry import DialectRegistry

REQUEST_TYPE = alt(b"http", b"https", b"h2", b"grpcs", b"ws", b"wss")

# app/my-alb/1234567890abcdef
LOAD_BALANCER_ID = seq(
    one_of(b"a-zA-Z0-9"),
    opt(seq(star(one_of(b"/a-zA-Z0-9-")), one_of(b"a-zA-Z0-9"))),
)

HTTP_METHOD = alt(b"-", plus(one_of(b"A-Z_")))
# A request line AWS could not parse is logged as "- <url> -"
ALB_HTTP_VERSION = alt(seq(b"-", opt(SPACE)), HTTP_VERSION)

ARN_OR_DASH = alt(seq(b"arn:", star(none_of(b" "))), b"-")
ESCAPED_QUOTE_BODY = star(alt(none_of(b'\\"'), b'\\"'))
CERT_ARN = alt(seq(b"arn:", ESCAPED_QUOTE_BODY), b"session-reused", b"-")
RULE_PRIORITY = alt(repeat(DIGIT, 1, 5), b"-1", b"-")
DOMAIN_NAME = star(one_of(b"0-9A-Za-z.*-"))
# e.g. "forward", "waf,forward", "fixed-response"
ACTIONS = star(one_of(b"a-z,-"))
WORD_OR_DASH = alt(plus(LETTER), b"-")
TARGET_LIST = alt(seq(IP_PORT, star(seq(SPACE, IP_PORT))), b"-")
STATUS_LIST = alt(seq(digits(3), star(seq(SPACE, digits(3)))), b"-")
CLASSIFICATION = alt(b"Acceptable", b"Ambiguous", b"Severe", b"-")


class ALBRecord(Record):
    FIELDS = (
        "type",
        "time",
        "elb",
        "client_ip",
        "client_port",
        "target_ip_port",
        "request_processing_time",
        "target_processing_time",
        "response_processing_time",
        "elb_status_code",
        "target_status_code",
        "received_bytes",
        "sent_bytes",
        "http_method",
        "url",
        "http_version",
        "user_agent",
        "ssl_cipher",
        "ssl_protocol",
        "target_group_arn",
        "trace_id",
        "domain_name",
        "chosen_cert_arn",
        "matched_rule_priority",
        "request_creation_time",
        "actions_executed",
        "redirect_url",
        "error_reason",
        "target_ip_port_list",
        "target_status_code_list",
        "classification",
        "classification_reason",
    )


ALB_LINE = space_separated(
    capture("type", REQUEST_TYPE),
    capture("time", TIMESTAMP),
    capture("elb", LOAD_BALANCER_ID),
    seq(capture("client_ip", IPV4), lit(b":"), capture("client_port", PORT)),
    capture("target_ip_port", IP_PORT_OR_DASH),
    capture("request_processing_time", PROCESSING_TIME),
    capture("target_processing_time", PROCESSING_TIME),
    capture("response_processing_time", PROCESSING_TIME),
    capture("elb_status_code", STATUS_CODE),
    capture("target_status_code", STATUS_CODE),
    capture("received_bytes", BYTE_COUNT),
    capture("sent_bytes", BYTE_COUNT),
    quoted(
        seq(
            capture("http_method", HTTP_METHOD),
            SPACE,
            capture("url", STRING_BODY),
            SPACE,
            capture("http_version", ALB_HTTP_VERSION),
        )
    ),
    capture("user_agent", quoted(STRING_BODY)),
    capture("ssl_cipher", SSL_CIPHER),
    capture("ssl_protocol", SSL_PROTOCOL),
    capture("target_group_arn", ARN_OR_DASH),
    quoted(capture("trace_id", ESCAPED_QUOTE_BODY)),
    quoted(capture("domain_name", DOMAIN_NAME)),
    quoted(capture("chosen_cert_arn", CERT_ARN)),
    capture("matched_rule_priority", RULE_PRIORITY),
    capture("request_creation_time", TIMESTAMP),
    quoted(capture("actions_executed", ACTIONS)),
    quoted(capture("redirect_url", alt(STRING_BODY, b"-"))),
    quoted(capture("error_reason", WORD_OR_DASH)),
    quoted(capture("target_ip_port_list", TARGET_LIST)),
    quoted(capture("target_status_code_list", STATUS_LIST)),
    quoted(capture("classification", CLASSIFICATION)),
    quoted(capture("classification_reason", WORD_OR_DASH)),
)


@DialectRegistry.register("alb")
class ALBParser(DialectParser):
    """
    Parser for Application Load Balancer access logs.

    Example:
        parser = ALBParser()
        record = parser.parse(line)
        print(record["client_ip"], record.to_json())
    """

    name = "alb"
    file_suffix = ".log.gz"
    compressed = True
    record_class = ALBRecord
    LINE = ALB_LINE
