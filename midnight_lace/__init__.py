"""Midnight Lace - token-gated music purchases."""

__version__ = "1.0.0"
