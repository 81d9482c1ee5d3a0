"""Errors raised while compiling WebC templates."""

from typing import Optional


class WebCError(Exception):
    """Base class for every fatal compilation error."""

    def __init__(self, message: str, file_path: Optional[str] = None):
        self.message = message
        self.file_path = file_path
        super().__init__(message)

    def __str__(self) -> str:
        if self.file_path and self.file_path not in self.message:
            return f"{self.message} ({self.file_path})"
        return self.message


class CircularDependencyError(WebCError):
    """Raised when a component (transitively) uses itself."""

    pass


class ScopeCollisionError(WebCError):
    """Raised when two files claim the same explicit webc:scoped identifier."""

    pass


class UnregisteredComponentError(WebCError):
    """Raised when a tag maps to a component file that was never precompiled."""

    pass


class InvalidReferenceError(WebCError):
    """Raised for unknown aliases and references escaping the project root."""

    pass


class OrphanedDirectiveError(WebCError):
    """Raised when webc:else or webc:elseif has no preceding webc:if."""

    pass


class ConflictingContentDirectivesError(WebCError):
    """Raised when a node uses more than one of @html, @text and @raw."""

    pass


class EvaluationError(WebCError):
    """Raised when a dynamic attribute, directive or script fails to evaluate."""

    pass


class ComponentNameCollisionError(WebCError):
    """Raised when one tag name is defined by two different component files."""

    pass


class TransformError(WebCError):
    """Raised when a content transform cannot be applied."""

    pass


class ConfigError(WebCError):
    """Raised for an invalid [tool.pywebc] table or global data file."""

    pass
