"""Trador - autonomous multi-position market-following engine."""

__version__ = "0.1.0"
