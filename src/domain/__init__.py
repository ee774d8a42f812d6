"""Domain layer: errors, constants and schemas."""

from .errors import ConfigurationError, ListenError, ServeError, VisibilityViolation
from .schemas import DirectoryBatch, Entry, ServerConfig

__all__ = [
    "ServeError",
    "ConfigurationError",
    "ListenError",
    "VisibilityViolation",
    "Entry",
    "DirectoryBatch",
    "ServerConfig",
]
