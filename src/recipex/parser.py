"""Recipe file parser.

The accepted format is a subset of the `just` language:

    export RUST_LOG := "info"
    contract := `jq -re '.address' deploy.json`

    # Publish a value
    publish value='12345678' prover='local':
        publisher --input={{value}} --prover={{prover}}
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import TYPE_CHECKING

from recipex.errors import ParseError, ParseErrorKind
from recipex.types import (
    Binding,
    BindingKind,
    Fragment,
    Parameter,
    Placeholder,
    Recipe,
    RecipeLine,
    Registry,
    SourceLocation,
    Template,
    Text,
)

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

NAME_PATTERN = r"[A-Za-z_][A-Za-z0-9_-]*"
_NAME_RE = re.compile(NAME_PATTERN)
_BINDING_RE = re.compile(rf"^(?P<export>export\s+)?(?P<name>{NAME_PATTERN})\s*:=\s*")
_DOUBLE_QUOTE_ESCAPES = {"n": "\n", "t": "\t", "\\": "\\", '"': '"'}


def load_recipe_file(path: Path) -> Registry:
    """Read and parse a recipe file from disk."""
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise ParseError(
            ParseErrorKind.SYNTAX_ERROR,
            f"cannot read recipe file: {exc.strerror or exc}",
            SourceLocation(str(path), 1),
        ) from exc
    try:
        source = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        line = data.count(b"\n", 0, exc.start) + 1
        column = exc.start - (data.rfind(b"\n", 0, exc.start) + 1) + 1
        raise ParseError(
            ParseErrorKind.SYNTAX_ERROR,
            "recipe file is not valid UTF-8",
            SourceLocation(str(path), line, column),
        ) from exc
    registry = parse_recipes(source, path=path)
    logger.debug(
        "loaded %s: %d bindings, %d recipes",
        path,
        len(registry.bindings),
        len(registry.recipes),
    )
    return registry


def parse_recipes(source: str, *, path: Path) -> Registry:
    """Parse recipe file text into a registry.

    Args:
        source: Recipe file contents
        path: Path the contents came from (used for locations and working directory)

    Returns:
        Registry with bindings and recipes in declaration order

    Raises:
        ParseError: On duplicate names, bad parameter order or malformed syntax
    """
    bindings: dict[str, Binding] = {}
    recipes: dict[str, Recipe] = {}

    header: Recipe | None = None
    body: list[RecipeLine] = []
    pending_doc: str | None = None

    def flush() -> None:
        nonlocal header, body
        if header is not None:
            recipes[header.name] = replace(header, body=tuple(body))
        header = None
        body = []

    for lineno, raw_line in enumerate(source.splitlines(), start=1):
        line = raw_line.rstrip()
        location = SourceLocation(path=str(path), line=lineno)

        if not line.strip():
            pending_doc = None
            continue

        if line[0] in " \t":
            if header is None:
                raise ParseError(
                    ParseErrorKind.SYNTAX_ERROR,
                    "indented line outside of a recipe",
                    location,
                )
            indent = len(line) - len(line.lstrip())
            body.append(_parse_body_line(line[indent:], replace(location, column=indent + 1)))
            continue

        flush()

        if line.startswith("#"):
            pending_doc = line[1:].strip() or None
            continue

        binding_match = _BINDING_RE.match(line)
        if binding_match:
            binding = _parse_binding(line, binding_match, location)
            if binding.name in bindings:
                raise ParseError(
                    ParseErrorKind.DUPLICATE_BINDING,
                    f"binding '{binding.name}' is already defined at {bindings[binding.name].location}",
                    location,
                )
            bindings[binding.name] = binding
            pending_doc = None
            continue

        recipe = _parse_header(line, location, doc=pending_doc)
        if recipe.name in recipes:
            raise ParseError(
                ParseErrorKind.DUPLICATE_RECIPE,
                f"recipe '{recipe.name}' is already defined at {recipes[recipe.name].location}",
                location,
            )
        header = recipe
        pending_doc = None

    flush()
    return Registry(path=path, bindings=bindings, recipes=recipes)


def compile_template(source: str, location: SourceLocation) -> Template:
    """Split a string into literal text and `{{ name }}` placeholder fragments."""
    fragments: list[Fragment] = []
    buffer: list[str] = []
    pos = 0

    while pos < len(source):
        if source.startswith("{{{{", pos):
            buffer.append("{{")
            pos += 4
            continue
        if source.startswith("{{", pos):
            column = location.column + pos
            end = source.find("}}", pos + 2)
            if end == -1:
                raise ParseError(
                    ParseErrorKind.SYNTAX_ERROR,
                    "unterminated '{{' placeholder",
                    replace(location, column=column),
                )
            name = source[pos + 2 : end].strip()
            if not _NAME_RE.fullmatch(name):
                raise ParseError(
                    ParseErrorKind.SYNTAX_ERROR,
                    f"invalid placeholder name {name!r}",
                    replace(location, column=column),
                )
            if buffer:
                fragments.append(Text("".join(buffer)))
                buffer = []
            fragments.append(Placeholder(name=name, column=column))
            pos = end + 2
            continue
        buffer.append(source[pos])
        pos += 1

    if buffer:
        fragments.append(Text("".join(buffer)))
    return Template(source=source, fragments=tuple(fragments))


def _parse_binding(line: str, match: re.Match[str], location: SourceLocation) -> Binding:
    start = match.end()
    value_location = replace(location, column=start + 1)
    if start >= len(line):
        raise ParseError(ParseErrorKind.SYNTAX_ERROR, "binding has no value", value_location)

    quote = line[start]
    value, end = _read_string(line, start, location)
    _expect_line_end(line, end, location)

    kind = BindingKind.COMMAND if quote == "`" else BindingKind.LITERAL
    return Binding(
        name=match.group("name"),
        kind=kind,
        template=compile_template(value, replace(value_location, column=start + 2)),
        exported=match.group("export") is not None,
        location=location,
    )


def _parse_header(line: str, location: SourceLocation, *, doc: str | None) -> Recipe:
    pos = 0
    quiet = line.startswith("@")
    if quiet:
        pos = 1

    name_match = _NAME_RE.match(line, pos)
    if not name_match:
        raise ParseError(
            ParseErrorKind.SYNTAX_ERROR,
            f"expected recipe or binding, got {line!r}",
            replace(location, column=pos + 1),
        )
    name = name_match.group(0)
    pos = name_match.end()

    parameters: list[Parameter] = []
    seen_default = False
    while True:
        pos = _skip_spaces(line, pos)
        if pos >= len(line):
            raise ParseError(
                ParseErrorKind.SYNTAX_ERROR,
                f"recipe '{name}' header is missing ':'",
                replace(location, column=pos + 1),
            )
        if line[pos] == ":":
            _expect_line_end(line, pos + 1, location)
            break

        param_column = pos + 1
        param_match = _NAME_RE.match(line, pos)
        if not param_match:
            raise ParseError(
                ParseErrorKind.SYNTAX_ERROR,
                f"unexpected {line[pos]!r} in recipe '{name}' header",
                replace(location, column=param_column),
            )
        param_name = param_match.group(0)
        pos = param_match.end()

        default: str | None = None
        if pos < len(line) and line[pos] == "=":
            pos += 1
            if pos >= len(line) or line[pos] not in "'\"":
                raise ParseError(
                    ParseErrorKind.SYNTAX_ERROR,
                    f"default for parameter '{param_name}' must be a quoted string",
                    replace(location, column=pos + 1),
                )
            default, pos = _read_string(line, pos, location)

        if any(p.name == param_name for p in parameters):
            raise ParseError(
                ParseErrorKind.SYNTAX_ERROR,
                f"recipe '{name}' has duplicate parameter '{param_name}'",
                replace(location, column=param_column),
            )
        if default is None and seen_default:
            raise ParseError(
                ParseErrorKind.INVALID_PARAMETER_ORDER,
                f"required parameter '{param_name}' follows a parameter with a default",
                replace(location, column=param_column),
            )
        seen_default = seen_default or default is not None
        parameters.append(Parameter(name=param_name, default=default))

    return Recipe(
        name=name,
        parameters=tuple(parameters),
        body=(),
        location=location,
        doc=doc,
        quiet=quiet,
    )


def _parse_body_line(text: str, location: SourceLocation) -> RecipeLine:
    echo_toggle = False
    ignore_errors = False
    prefix = 0
    while prefix < len(text) and text[prefix] in "@-":
        if text[prefix] == "@":
            echo_toggle = True
        else:
            ignore_errors = True
        prefix += 1

    command = text[prefix:]
    return RecipeLine(
        template=compile_template(command, replace(location, column=location.column + prefix)),
        location=location,
        echo_toggle=echo_toggle,
        ignore_errors=ignore_errors,
    )


def _read_string(line: str, start: int, location: SourceLocation) -> tuple[str, int]:
    """Read a quoted or backticked string starting at `start`.

    Returns:
        Tuple of (unquoted value, index just past the closing delimiter)
    """
    quote = line[start]
    if quote not in "'\"`":
        raise ParseError(
            ParseErrorKind.SYNTAX_ERROR,
            "expected a quoted string or backtick command",
            replace(location, column=start + 1),
        )

    chars: list[str] = []
    pos = start + 1
    while pos < len(line):
        char = line[pos]
        if char == quote:
            return "".join(chars), pos + 1
        if quote == '"' and char == "\\":
            if pos + 1 >= len(line) or line[pos + 1] not in _DOUBLE_QUOTE_ESCAPES:
                raise ParseError(
                    ParseErrorKind.SYNTAX_ERROR,
                    "invalid escape sequence",
                    replace(location, column=pos + 1),
                )
            chars.append(_DOUBLE_QUOTE_ESCAPES[line[pos + 1]])
            pos += 2
            continue
        chars.append(char)
        pos += 1

    raise ParseError(
        ParseErrorKind.SYNTAX_ERROR,
        f"unterminated {quote} string",
        replace(location, column=start + 1),
    )


def _expect_line_end(line: str, pos: int, location: SourceLocation) -> None:
    """Allow only whitespace or a trailing comment after `pos`."""
    rest = line[pos:].strip()
    if rest and not rest.startswith("#"):
        raise ParseError(
            ParseErrorKind.SYNTAX_ERROR,
            f"unexpected trailing text {rest!r}",
            replace(location, column=pos + 1 + (len(line[pos:]) - len(line[pos:].lstrip()))),
        )


def _skip_spaces(line: str, pos: int) -> int:
    while pos < len(line) and line[pos] in " \t":
        pos += 1
    return pos
