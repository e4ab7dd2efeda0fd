"""Template substitution."""

from __future__ import annotations

from collections.abc import Callable

from recipex.types import Placeholder, Template, Text


def render_template(template: Template, lookup: Callable[[str], str]) -> str:
    """Join template fragments, filling placeholders through `lookup`.

    `lookup` raises for names it cannot resolve; nothing is ever
    substituted as an empty string.
    """
    parts: list[str] = []
    for fragment in template.fragments:
        if isinstance(fragment, Text):
            parts.append(fragment.value)
        elif isinstance(fragment, Placeholder):
            parts.append(lookup(fragment.name))
    return "".join(parts)
