"""
elb-log-parser: convert AWS load balancer access logs to JSON lines.

Supports Application Load Balancer (gzip-compressed ``*.log.gz``) and Classic
Load Balancer (``*.log``) access logs.
"""

__version__ = "0.3.0"
