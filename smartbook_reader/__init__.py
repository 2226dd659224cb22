"""Pagination, navigation and reading-progress engine for an e-book reader."""

__version__ = "0.1.0"
