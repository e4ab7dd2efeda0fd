"""recipex command line: run named recipes from a justfile."""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from recipex import __version__
from recipex.config import load_settings
from recipex.discovery import find_recipe_file
from recipex.dispatcher import lookup_recipe
from recipex.errors import EXIT_INTERRUPTED, RecipexError
from recipex.listing import format_bindings, format_recipe_list, format_recipe_source
from recipex.runner import RecipeRunner

cli = typer.Typer(
    name="recipex",
    help="recipex - run named recipes from a justfile",
    add_completion=False,
)
console = Console(markup=False, emoji=False, highlight=False, soft_wrap=True)
err_console = Console(stderr=True, markup=False, emoji=False, highlight=False, soft_wrap=True)


def _version_option_callback(value: bool) -> None:
    """Handle eager --version option."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    handler = RichHandler(console=err_console, show_path=False, show_time=False)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )


def _parse_overrides(values: list[str]) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for item in values:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"expected NAME=VALUE, got {item!r}", param_hint="--set")
        overrides[name] = value
    return overrides


def _fail(exc: RecipexError) -> typer.Exit:
    err_console.print(exc.render(), style="red")
    return typer.Exit(exc.exit_code)


@cli.command(
    context_settings={
        "allow_interspersed_args": False,
        "ignore_unknown_options": True,
        "help_option_names": ["-h", "--help"],
    }
)
def main(
    recipe: str | None = typer.Argument(None, help="Recipe to run (default: first recipe)."),
    args: list[str] | None = typer.Argument(None, help="Positional arguments for the recipe."),
    file: Path | None = typer.Option(None, "--file", "-f", help="Recipe file to use."),
    list_recipes: bool = typer.Option(False, "--list", "-l", help="List recipes and exit."),
    show: str | None = typer.Option(None, "--show", "-s", help="Print a recipe's source and exit."),
    evaluate: bool = typer.Option(False, "--evaluate", help="Print resolved bindings and exit."),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Print lines instead of running them."),
    set_values: list[str] | None = typer.Option(
        None, "--set", help="Override a binding (NAME=VALUE). Repeatable."
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Do not echo recipe lines."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show recipex version and exit.",
        is_eager=True,
        callback=_version_option_callback,
    ),
) -> None:
    """Run RECIPE with ARGS from the nearest justfile."""
    _configure_logging(verbose)
    overrides = _parse_overrides(set_values or [])

    try:
        recipe_path = find_recipe_file(Path.cwd(), file)
    except FileNotFoundError as e:
        err_console.print(f"error: {e}", style="red")
        raise typer.Exit(1) from e

    try:
        settings = load_settings(recipe_path.parent)
        runner = RecipeRunner(recipe_path, settings=settings, overrides=overrides)
        registry = runner.load()

        if list_recipes:
            listing = format_recipe_list(registry)
            if listing:
                console.print(listing)
            return

        if show is not None:
            shown = lookup_recipe(registry, show)
            console.print(format_recipe_source(shown))
            return

        if evaluate:
            resolved = runner.resolve()
            console.print(format_bindings(registry, resolved))
            return

        status = runner.dispatch(
            recipe,
            args or [],
            dry_run=dry_run,
            echo=False if quiet else None,
        )
    except RecipexError as e:
        raise _fail(e) from e
    except KeyboardInterrupt as e:
        raise typer.Exit(EXIT_INTERRUPTED) from e

    if status != 0:
        raise typer.Exit(status)


if __name__ == "__main__":
    cli()
