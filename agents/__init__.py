"""Routing and validation agents."""

from .catalog import default_catalog
from .router import ModelRouter, RoutingPolicy
from .validator import StreamingValidator, ValidatorState
from .checks import ValidationPolicy

__all__ = [
    "default_catalog",
    "ModelRouter",
    "RoutingPolicy",
    "StreamingValidator",
    "ValidatorState",
    "ValidationPolicy",
]
