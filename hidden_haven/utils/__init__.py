"""Utilities package."""

from hidden_haven.utils.helpers import format_duration, generate_uuid, utcnow
from hidden_haven.utils.logger import setup_logging

__all__ = [
    "setup_logging",
    "generate_uuid",
    "utcnow",
    "format_duration",
]
