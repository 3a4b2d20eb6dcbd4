"""
Pytest configuration and shared fixtures for unit tests.
"""

import pytest

from elb_log_parser.dialects import ALBParser, ClassicLBParser
from samples import ALB_H2_LINE, CLASSIC_HTTP_LINE


@pytest.fixture
def alb_parser() -> ALBParser:
    return ALBParser()


@pytest.fixture
def classic_parser() -> ClassicLBParser:
    return ClassicLBParser()


@pytest.fixture
def alb_line() -> bytes:
    return ALB_H2_LINE


@pytest.fixture
def classic_line() -> bytes:
    return CLASSIC_HTTP_LINE
