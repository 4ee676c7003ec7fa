"""LendDesk service: LinkedIn contact extraction and the AI loan advisor chat."""

__version__ = "0.1.0"
