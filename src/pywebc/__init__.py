from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pywebc")
except PackageNotFoundError:
    __version__ = "unknown"

from pywebc.compiler.serializer import CompilationResult
from pywebc.compiler.streams import Channel
from pywebc.exceptions import (
    CircularDependencyError,
    ComponentNameCollisionError,
    ConfigError,
    ConflictingContentDirectivesError,
    EvaluationError,
    InvalidReferenceError,
    OrphanedDirectiveError,
    ScopeCollisionError,
    TransformError,
    UnregisteredComponentError,
    WebCError,
)
from pywebc.webc import WebC

__all__ = [
    "WebC",
    "CompilationResult",
    "Channel",
    "WebCError",
    "CircularDependencyError",
    "ComponentNameCollisionError",
    "ConfigError",
    "ConflictingContentDirectivesError",
    "EvaluationError",
    "InvalidReferenceError",
    "OrphanedDirectiveError",
    "ScopeCollisionError",
    "TransformError",
    "UnregisteredComponentError",
]
