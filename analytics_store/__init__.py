"""Persistence layer for A/B experiments and analytics sessions."""

__version__ = "0.1.0"
