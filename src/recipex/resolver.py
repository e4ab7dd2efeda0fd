"""Eager binding resolution."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from recipex.errors import ResolutionError, ResolutionErrorKind
from recipex.exec import ExecError, run_captured, shell_argv
from recipex.render import render_template
from recipex.types import BindingKind, ResolvedBindings

if TYPE_CHECKING:
    from recipex.types import Binding, Registry

logger = logging.getLogger(__name__)

DEFAULT_SHELL: tuple[str, ...] = ("sh", "-cu")


def resolve_bindings(
    registry: Registry,
    *,
    shell: Sequence[str] = DEFAULT_SHELL,
    overrides: Mapping[str, str] | None = None,
    environment: Mapping[str, str] | None = None,
) -> ResolvedBindings:
    """Resolve every binding once, in dependency order.

    Args:
        registry: Parsed recipe file
        shell: Shell argv prefix used to run command bindings
        overrides: Values that replace bindings before resolution; an
            overridden command binding is never executed
        environment: Environment for helper processes (defaults to os.environ)

    Returns:
        Immutable table of binding values and the exported subset

    Raises:
        ResolutionError: If a helper fails, a reference is unknown or
            bindings form a cycle
    """
    overrides = dict(overrides or {})
    helper_env = dict(os.environ if environment is None else environment)
    resolved: dict[str, str] = {}
    in_progress: list[str] = []

    def resolve(name: str, referrer: Binding | None) -> str:
        if name in resolved:
            return resolved[name]
        if name in in_progress:
            cycle = [*in_progress[in_progress.index(name) :], name]
            raise ResolutionError(
                ResolutionErrorKind.CYCLIC_BINDING,
                f"circular binding reference: {' -> '.join(cycle)}",
                binding_name=name,
            )
        binding = registry.bindings.get(name)
        if binding is None:
            source = f"binding '{referrer.name}' at {referrer.location}" if referrer else "override"
            raise ResolutionError(
                ResolutionErrorKind.UNRESOLVED_REFERENCE,
                f"{source} references undefined binding '{name}'",
                binding_name=referrer.name if referrer else name,
            )

        if name in overrides:
            value = overrides[name]
            logger.debug("binding %s overridden", name)
        else:
            in_progress.append(name)
            references = {ref: resolve(ref, binding) for ref in binding.template.references}
            in_progress.pop()
            text = render_template(binding.template, references.__getitem__)
            if binding.kind is BindingKind.COMMAND:
                value = _run_helper(binding, text, registry, shell, helper_env)
            else:
                value = text

        resolved[name] = value
        return value

    for name in registry.bindings:
        resolve(name, None)

    return ResolvedBindings.build(
        {name: resolved[name] for name in registry.bindings},
        registry.exported_names(),
    )


def _run_helper(
    binding: Binding,
    command: str,
    registry: Registry,
    shell: Sequence[str],
    env: Mapping[str, str],
) -> str:
    logger.debug("running helper for binding %s", binding.name)
    try:
        result = run_captured(
            shell_argv(shell, command),
            cwd=registry.working_directory,
            env=env,
        )
    except ExecError as exc:
        detail = exc.result.stderr.strip()
        message = (
            f"backtick for binding '{binding.name}' at {binding.location} "
            f"failed with exit code {exc.result.returncode}"
        )
        if detail:
            message = f"{message}:\n{detail}"
        raise ResolutionError(
            ResolutionErrorKind.SUBPROCESS_FAILED,
            message,
            binding_name=binding.name,
            exit_code=exc.result.returncode,
        ) from exc
    except OSError as exc:
        raise ResolutionError(
            ResolutionErrorKind.SUBPROCESS_FAILED,
            f"could not start shell {shell[0]!r} for binding '{binding.name}': {exc}",
            binding_name=binding.name,
        ) from exc
    return result.stdout.strip()
