"""Resilient load orchestration for pages and resources on flaky backends."""

__version__ = "0.1.0"
