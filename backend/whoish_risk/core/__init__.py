"""Core application configuration."""

from whoish_risk.core.config import settings

__all__ = [
    "settings",
]
