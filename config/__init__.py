"""Configuration for the visualization generation core."""

from .settings import Settings

__all__ = ["Settings"]
