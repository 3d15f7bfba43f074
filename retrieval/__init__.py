"""Retrieval layer for example visualizations."""

from .example_provider import ExampleProvider, InMemoryExampleProvider

__all__ = ["ExampleProvider", "InMemoryExampleProvider"]
