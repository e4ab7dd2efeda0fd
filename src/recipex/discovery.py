"""Recipe file discovery."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

RECIPE_FILENAMES: tuple[str, ...] = ("justfile", "Justfile", ".justfile")


def find_recipe_file(
    start: Path,
    file_override: Path | None = None,
) -> Path:
    """
    Locate the recipe file to load.

    Priority order:
      1. Explicit --file if provided
      2. First recipe file name found in `start`, then in each parent

    Raises:
        FileNotFoundError: If no recipe file can be found
    """
    if file_override is not None:
        override_path = file_override.resolve()
        if not override_path.is_file():
            raise FileNotFoundError(f"Recipe file does not exist: {override_path}")
        return override_path

    current = start.resolve()
    for directory in (current, *current.parents):
        for name in RECIPE_FILENAMES:
            candidate = directory / name
            if candidate.is_file():
                logger.debug("found recipe file %s", candidate)
                return candidate

    raise FileNotFoundError(
        f"No recipe file found in {current} or any parent directory "
        f"(looked for: {', '.join(RECIPE_FILENAMES)})"
    )
