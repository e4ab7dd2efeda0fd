"""Recipe dispatch: argument binding, substitution and sequential execution."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from rich.console import Console

from recipex.errors import DispatchError, DispatchErrorKind
from recipex.exec import run_streaming, shell_argv
from recipex.render import render_template
from recipex.resolver import DEFAULT_SHELL
from recipex.types import InvocationContext

if TYPE_CHECKING:
    from recipex.types import Recipe, RecipeLine, Registry, ResolvedBindings

logger = logging.getLogger(__name__)

EXIT_SHELL_NOT_FOUND = 127

console = Console(stderr=True, markup=False, emoji=False, highlight=False, soft_wrap=True)


@dataclass(frozen=True)
class RenderedLine:
    """Recipe line with every placeholder substituted."""

    line: RecipeLine
    command: str
    echo: bool


def lookup_recipe(registry: Registry, name: str) -> Recipe:
    recipe = registry.recipes.get(name)
    if recipe is None:
        known = ", ".join(registry.recipes) or "none"
        raise DispatchError(
            DispatchErrorKind.UNKNOWN_RECIPE,
            f"justfile does not contain recipe '{name}' (available: {known})",
            name=name,
        )
    return recipe


def bind_arguments(recipe: Recipe, args: Sequence[str]) -> dict[str, str]:
    """Bind positional arguments to parameters, filling trailing defaults."""
    if len(args) > len(recipe.parameters):
        raise DispatchError(
            DispatchErrorKind.TOO_MANY_ARGUMENTS,
            f"recipe '{recipe.name}' takes at most {len(recipe.parameters)} "
            f"argument(s) but got {len(args)}\nusage: {recipe.signature()}",
            name=recipe.name,
        )

    bound: dict[str, str] = {}
    for index, param in enumerate(recipe.parameters):
        if index < len(args):
            bound[param.name] = args[index]
        elif param.default is not None:
            bound[param.name] = param.default
        else:
            raise DispatchError(
                DispatchErrorKind.MISSING_REQUIRED_ARGUMENT,
                f"recipe '{recipe.name}' is missing required argument '{param.name}'"
                f"\nusage: {recipe.signature()}",
                name=param.name,
            )
    return bound


def build_context(
    recipe: Recipe,
    resolved: ResolvedBindings,
    args: Sequence[str],
    *,
    base_environment: Mapping[str, str] | None = None,
    extra_environment: Mapping[str, str] | None = None,
) -> InvocationContext:
    """Merge bindings, bound parameters and exports for one invocation.

    Parameters shadow bindings of the same name. The environment is a fresh
    copy: inherited variables, then `extra_environment`, then exports.
    """
    arguments = bind_arguments(recipe, args)
    environment = dict(os.environ if base_environment is None else base_environment)
    environment.update(extra_environment or {})
    environment.update(resolved.exports)
    return InvocationContext(
        recipe=recipe,
        arguments=arguments,
        values={**resolved.values, **arguments},
        environment=environment,
    )


def render_recipe(context: InvocationContext) -> list[RenderedLine]:
    """Substitute placeholders in every body line of the recipe."""

    def lookup(name: str) -> str:
        try:
            return context.values[name]
        except KeyError:
            raise DispatchError(
                DispatchErrorKind.UNRESOLVED_PLACEHOLDER,
                f"recipe '{context.recipe.name}' references undefined name '{name}'",
                name=name,
            ) from None

    return [
        RenderedLine(
            line=line,
            command=render_template(line.template, lookup),
            echo=context.recipe.is_echoed(line),
        )
        for line in context.recipe.body
    ]


def execute_lines(
    context: InvocationContext,
    lines: Sequence[RenderedLine],
    *,
    registry: Registry,
    shell: Sequence[str] = DEFAULT_SHELL,
    echo: bool = True,
    dry_run: bool = False,
) -> int:
    """Run rendered lines in order, stopping at the first failure.

    Returns:
        Exit status of the failing line, or 0
    """
    for rendered in lines:
        if dry_run or (echo and rendered.echo):
            console.print(rendered.command, style="bold")
        if dry_run:
            continue

        try:
            returncode = run_streaming(
                shell_argv(shell, rendered.command),
                cwd=registry.working_directory,
                env=context.environment,
            )
        except OSError as exc:
            logger.error("could not start shell %r: %s", shell[0], exc)
            return EXIT_SHELL_NOT_FOUND

        if returncode != 0:
            if rendered.line.ignore_errors:
                logger.debug("ignoring exit %d at %s", returncode, rendered.line.location)
                continue
            console.print(
                f"error: recipe '{context.recipe.name}' failed on line "
                f"{rendered.line.location.line} with exit code {returncode}",
                style="red",
            )
            return returncode
    return 0


def dispatch(
    registry: Registry,
    resolved: ResolvedBindings,
    name: str,
    args: Sequence[str] = (),
    *,
    shell: Sequence[str] = DEFAULT_SHELL,
    echo: bool = True,
    dry_run: bool = False,
    extra_environment: Mapping[str, str] | None = None,
) -> int:
    """Run a named recipe with positional arguments.

    Every line is rendered before the first one runs, so an undefined
    placeholder anywhere in the body stops the recipe before it starts.

    Returns:
        Exit status of the recipe (0 on success)

    Raises:
        DispatchError: Unknown recipe, arity mismatch or undefined placeholder
    """
    recipe = lookup_recipe(registry, name)
    context = build_context(recipe, resolved, args, extra_environment=extra_environment)
    lines = render_recipe(context)
    logger.debug("dispatching %s with %s", recipe.name, dict(context.arguments))
    return execute_lines(
        context,
        lines,
        registry=registry,
        shell=shell,
        echo=echo,
        dry_run=dry_run,
    )
