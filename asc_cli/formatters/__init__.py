"""Output formatters for the App Store Connect CLI."""

from .json_formatter import JsonFormatter
from .human_formatter import HumanFormatter

__all__ = ["JsonFormatter", "HumanFormatter"]
