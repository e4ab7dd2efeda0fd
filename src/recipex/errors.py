"""Error taxonomy for recipe loading, binding resolution and dispatch."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from recipex.types import SourceLocation

EXIT_PARSE = 2
EXIT_CONFIG = 2
EXIT_RESOLUTION = 3
EXIT_DISPATCH = 4
EXIT_INTERRUPTED = 130


class ParseErrorKind(str, Enum):
    """Reasons a recipe file can be rejected."""

    DUPLICATE_RECIPE = "duplicate-recipe"
    DUPLICATE_BINDING = "duplicate-binding"
    INVALID_PARAMETER_ORDER = "invalid-parameter-order"
    SYNTAX_ERROR = "syntax-error"


class ResolutionErrorKind(str, Enum):
    """Reasons binding resolution can fail."""

    SUBPROCESS_FAILED = "subprocess-failed"
    CYCLIC_BINDING = "cyclic-binding"
    UNRESOLVED_REFERENCE = "unresolved-reference"


class DispatchErrorKind(str, Enum):
    """Reasons a recipe dispatch can be refused."""

    UNKNOWN_RECIPE = "unknown-recipe"
    TOO_MANY_ARGUMENTS = "too-many-arguments"
    MISSING_REQUIRED_ARGUMENT = "missing-required-argument"
    UNRESOLVED_PLACEHOLDER = "unresolved-placeholder"
    UNKNOWN_OVERRIDE = "unknown-override"


class RecipexError(Exception):
    """Base class for errors surfaced to the command line."""

    stage = "recipex"
    exit_code = 1

    def render(self) -> str:
        return f"error[{self.stage}]: {self}"


class ParseError(RecipexError):
    """Raised when a recipe file is malformed."""

    stage = "parse"
    exit_code = EXIT_PARSE

    def __init__(self, kind: ParseErrorKind, message: str, location: SourceLocation):
        super().__init__(f"{location}: {message}")
        self.kind = kind
        self.location = location


class ResolutionError(RecipexError):
    """Raised when a binding cannot be resolved."""

    stage = "resolve"
    exit_code = EXIT_RESOLUTION

    def __init__(
        self,
        kind: ResolutionErrorKind,
        message: str,
        *,
        binding_name: str,
        exit_code: int | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.binding_name = binding_name
        self.helper_exit_code = exit_code


class DispatchError(RecipexError):
    """Raised when a recipe cannot be dispatched."""

    stage = "dispatch"
    exit_code = EXIT_DISPATCH

    def __init__(self, kind: DispatchErrorKind, message: str, *, name: str):
        super().__init__(message)
        self.kind = kind
        self.name = name


class ConfigError(RecipexError):
    """Raised when runner settings are malformed or invalid."""

    stage = "config"
    exit_code = EXIT_CONFIG
