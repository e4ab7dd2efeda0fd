"""Runner session tying load, resolve and dispatch together."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any, NoReturn, TypeVar

from recipex.config import RunnerSettings
from recipex.dispatcher import bind_arguments, dispatch, lookup_recipe
from recipex.errors import DispatchError, DispatchErrorKind, RecipexError
from recipex.parser import load_recipe_file
from recipex.resolver import resolve_bindings

if TYPE_CHECKING:
    from pathlib import Path

    from recipex.types import Registry, ResolvedBindings

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class RunnerState(str, Enum):
    """Lifecycle of a runner session."""

    UNLOADED = "unloaded"
    LOADED = "loaded"
    BINDINGS_RESOLVED = "bindings-resolved"
    DISPATCHING = "dispatching"
    IDLE = "idle"
    FAILED = "failed"


class RecipeRunner:
    """Load a recipe file once, resolve its bindings once, dispatch many times.

    Any load, resolution or dispatch error moves the session to FAILED and
    further dispatches are refused. A recipe that exits non-zero is a normal
    outcome and leaves the session IDLE.
    """

    def __init__(
        self,
        path: Path,
        *,
        settings: RunnerSettings | None = None,
        overrides: Mapping[str, str] | None = None,
    ):
        self.path = path
        self.settings = settings or RunnerSettings()
        self.overrides = dict(overrides or {})
        self.state = RunnerState.UNLOADED
        self._registry: Registry | None = None
        self._resolved: ResolvedBindings | None = None

    @property
    def registry(self) -> Registry:
        if self._registry is None:
            return self.load()
        return self._registry

    def load(self) -> Registry:
        self._require_not_failed()
        registry = self._guard(load_recipe_file, self.path)
        unknown = sorted(set(self.overrides) - set(registry.bindings))
        if unknown:
            self._fail(
                DispatchError(
                    DispatchErrorKind.UNKNOWN_OVERRIDE,
                    f"cannot override undefined binding(s): {', '.join(unknown)}",
                    name=unknown[0],
                )
            )
        self._registry = registry
        self.state = RunnerState.LOADED
        return registry

    def resolve(self) -> ResolvedBindings:
        if self._resolved is not None:
            return self._resolved
        registry = self.registry
        self._resolved = self._guard(
            resolve_bindings,
            registry,
            shell=self.settings.shell,
            overrides=self.overrides,
        )
        self.state = RunnerState.BINDINGS_RESOLVED
        logger.debug("resolved %d bindings", len(self._resolved.values))
        return self._resolved

    def dispatch(
        self,
        name: str | None,
        args: Sequence[str] = (),
        *,
        dry_run: bool = False,
        echo: bool | None = None,
    ) -> int:
        """Run recipe `name` (the first recipe when None) and return its exit status."""
        self._require_not_failed()
        registry = self.registry
        if name is None:
            default = registry.default_recipe
            if default is None:
                self._fail(
                    DispatchError(
                        DispatchErrorKind.UNKNOWN_RECIPE,
                        f"{registry.path} has no recipes",
                        name="",
                    )
                )
            name = default.name

        # Unknown names and arity mismatches are refused before any helper process runs.
        recipe = self._guard(lookup_recipe, registry, name)
        self._guard(bind_arguments, recipe, args)
        resolved = self.resolve()

        self.state = RunnerState.DISPATCHING
        try:
            status = self._guard(
                dispatch,
                registry,
                resolved,
                name,
                args,
                shell=self.settings.shell,
                echo=self.settings.echo if echo is None else echo,
                dry_run=dry_run,
                extra_environment=self.settings.env,
            )
        except KeyboardInterrupt:
            self.state = RunnerState.FAILED
            raise
        self.state = RunnerState.IDLE
        return status

    def _guard(self, func: Callable[..., _T], *args: Any, **kwargs: Any) -> _T:
        try:
            return func(*args, **kwargs)
        except RecipexError as exc:
            self._fail(exc)

    def _fail(self, exc: RecipexError) -> NoReturn:
        self.state = RunnerState.FAILED
        raise exc

    def _require_not_failed(self) -> None:
        if self.state is RunnerState.FAILED:
            raise RuntimeError("runner failed earlier in this run; refusing to dispatch")
