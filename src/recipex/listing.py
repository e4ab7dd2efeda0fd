"""Text renderers for --list, --show and --evaluate."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from recipex.types import Recipe, RecipeLine, Registry, ResolvedBindings


def format_recipe_list(registry: Registry) -> str:
    """Render the recipe overview, one signature per line with its doc comment.

    A file without recipes renders as the empty string.
    """
    if not registry.recipes:
        return ""
    lines = ["Available recipes:"]
    signatures = [(recipe.signature(), recipe.doc) for recipe in registry.recipes.values()]
    width = max((len(sig) for sig, doc in signatures if doc), default=0)
    for signature, doc in signatures:
        if doc:
            lines.append(f"    {signature.ljust(width)} # {doc}")
        else:
            lines.append(f"    {signature}")
    return "\n".join(lines)


def format_recipe_source(recipe: Recipe) -> str:
    """Render a recipe back into recipe file syntax."""
    lines = []
    if recipe.doc:
        lines.append(f"# {recipe.doc}")
    prefix = "@" if recipe.quiet else ""
    lines.append(f"{prefix}{recipe.signature()}:")
    lines.extend(f"    {_line_prefix(line)}{line.template.source}" for line in recipe.body)
    return "\n".join(lines)


def format_bindings(registry: Registry, resolved: ResolvedBindings) -> str:
    """Render resolved bindings as `name := "value"` lines."""
    lines = []
    for name in registry.bindings:
        marker = "export " if registry.bindings[name].exported else ""
        value = resolved.values[name].replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
        lines.append(f'{marker}{name} := "{value}"')
    return "\n".join(lines)


def _line_prefix(line: RecipeLine) -> str:
    return ("@" if line.echo_toggle else "") + ("-" if line.ignore_errors else "")
