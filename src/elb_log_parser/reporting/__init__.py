"""Diagnostic reporting for rejected log lines."""

from .reporter import Reporter, color, color_enabled, stderr_is_terminal

__all__ = [
    "Reporter",
    "color",
    "color_enabled",
    "stderr_is_terminal",
]
