"""Recipe file domain types."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType


@dataclass(frozen=True)
class SourceLocation:
    """Position inside a recipe file (1-based)."""

    path: str
    line: int
    column: int = 1

    def __str__(self) -> str:
        return f"{self.path}:{self.line}:{self.column}"


@dataclass(frozen=True)
class Text:
    """Literal fragment of a template."""

    value: str


@dataclass(frozen=True)
class Placeholder:
    """`{{ name }}` fragment of a template."""

    name: str
    column: int


Fragment = Text | Placeholder


@dataclass(frozen=True)
class Template:
    """Pre-tokenized string with placeholder slots."""

    source: str
    fragments: tuple[Fragment, ...]

    @property
    def references(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fragments if isinstance(f, Placeholder))


class BindingKind(str, Enum):
    """How a binding produces its value."""

    LITERAL = "literal"
    COMMAND = "command"


@dataclass(frozen=True)
class Binding:
    """Top-level `name := value` declaration."""

    name: str
    kind: BindingKind
    template: Template
    exported: bool
    location: SourceLocation


@dataclass(frozen=True)
class Parameter:
    """Recipe parameter with optional default literal."""

    name: str
    default: str | None = None

    @property
    def required(self) -> bool:
        return self.default is None


@dataclass(frozen=True)
class RecipeLine:
    """Single body line of a recipe."""

    template: Template
    location: SourceLocation
    echo_toggle: bool = False
    ignore_errors: bool = False


@dataclass(frozen=True)
class Recipe:
    """Named, parameterized sequence of shell lines."""

    name: str
    parameters: tuple[Parameter, ...]
    body: tuple[RecipeLine, ...]
    location: SourceLocation
    doc: str | None = None
    quiet: bool = False

    def signature(self) -> str:
        parts = [self.name]
        for param in self.parameters:
            if param.default is None:
                parts.append(param.name)
            else:
                parts.append(f"{param.name}={_quote(param.default)}")
        return " ".join(parts)

    def is_echoed(self, line: RecipeLine) -> bool:
        return self.quiet == line.echo_toggle


@dataclass(frozen=True)
class Registry:
    """Parsed recipe file: bindings and recipes in declaration order."""

    path: Path
    bindings: Mapping[str, Binding]
    recipes: Mapping[str, Recipe]

    @property
    def working_directory(self) -> Path:
        return self.path.parent

    @property
    def default_recipe(self) -> Recipe | None:
        return next(iter(self.recipes.values()), None)

    def exported_names(self) -> tuple[str, ...]:
        return tuple(name for name, b in self.bindings.items() if b.exported)


@dataclass(frozen=True)
class ResolvedBindings:
    """Immutable table of binding values after resolution."""

    values: Mapping[str, str]
    exports: Mapping[str, str]

    @classmethod
    def build(cls, values: dict[str, str], exported: tuple[str, ...]) -> ResolvedBindings:
        return cls(
            values=MappingProxyType(dict(values)),
            exports=MappingProxyType({name: values[name] for name in exported}),
        )


@dataclass(frozen=True)
class InvocationContext:
    """Values and environment visible to one recipe invocation."""

    recipe: Recipe
    arguments: Mapping[str, str]
    values: Mapping[str, str]
    environment: Mapping[str, str] = field(default_factory=dict)


def _quote(value: str) -> str:
    if "'" in value:
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return f"'{value}'"
