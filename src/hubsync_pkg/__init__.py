"""Synchronization core between a numeric workspace and an engineering data repository."""

__version__ = "0.1.0"
