"""
Service lifetimes.
"""

from enum import Enum


class ServiceLifetime(str, Enum):
    """Service lifetime options."""

    SINGLETON = "singleton"  # One instance per container
    TRANSIENT = "transient"  # New instance every resolve

    @property
    def cacheable(self) -> bool:
        return self is ServiceLifetime.SINGLETON
