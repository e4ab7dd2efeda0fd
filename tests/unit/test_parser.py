"""Unit tests for recipe file parsing."""

from __future__ import annotations

from pathlib import Path

import pytest

from recipex.errors import ParseError, ParseErrorKind
from recipex.parser import compile_template, load_recipe_file, parse_recipes
from recipex.types import BindingKind, Parameter, Placeholder, SourceLocation, Text

PATH = Path("/work/justfile")


def _parse(text: str):
    return parse_recipes(text, path=PATH)


def test_parses_publisher_justfile(publisher_justfile: Path) -> None:
    registry = load_recipe_file(publisher_justfile)

    assert list(registry.recipes) == [
        "build",
        "contract",
        "contract-call",
        "deploy",
        "publish",
        "publish-jwt",
        "publish-jwt-cuda",
        "publish-jwt-metal",
    ]
    assert registry.exported_names() == (
        "RUST_BACKTRACE",
        "RUST_LOG",
        "ETH_WALLET_PRIVATE_KEY",
        "BONSAI_API_KEY",
        "BONSAI_API_URL",
    )
    assert registry.bindings["contract"].kind is BindingKind.COMMAND
    assert registry.bindings["chain-id"].kind is BindingKind.LITERAL
    assert registry.recipes["publish"].parameters == (
        Parameter(name="value", default="12345678"),
        Parameter(name="prover", default="local"),
    )
    assert registry.working_directory == publisher_justfile.parent


def test_shipped_example_justfile_parses() -> None:
    example = Path(__file__).resolve().parents[2] / "examples" / "justfile"
    registry = load_recipe_file(example)

    assert "publish-jwt-metal" in registry.recipes
    assert registry.bindings["contract"].kind is BindingKind.COMMAND


def test_binding_and_recipe_may_share_a_name() -> None:
    registry = _parse('contract := "0x1"\n\ncontract:\n    echo {{contract}}\n')

    assert "contract" in registry.bindings
    assert "contract" in registry.recipes


def test_string_forms() -> None:
    registry = _parse(
        "a := 'single \\n raw'\n"
        'b := "double\\tescaped \\"q\\""\n'
        "c := `echo hi`  # trailing comment\n"
    )

    assert registry.bindings["a"].template.source == "single \\n raw"
    assert registry.bindings["b"].template.source == 'double\tescaped "q"'
    assert registry.bindings["c"].template.source == "echo hi"
    assert registry.bindings["c"].kind is BindingKind.COMMAND


def test_body_lines_are_tokenized() -> None:
    registry = _parse("greet name:\n    echo {{ name }} and {{{{literal}}\n")

    line = registry.recipes["greet"].body[0]
    assert line.template.fragments == (
        Text("echo "),
        Placeholder(name="name", column=10),
        Text(" and {{literal}}"),
    )
    assert line.location.line == 2
    assert line.location.column == 5


def test_blank_lines_inside_body_are_skipped() -> None:
    registry = _parse("build:\n    echo one\n\n    echo two\ndeploy:\n    echo three\n")

    assert [line.template.source for line in registry.recipes["build"].body] == [
        "echo one",
        "echo two",
    ]
    assert len(registry.recipes["deploy"].body) == 1


def test_doc_comment_and_line_prefixes() -> None:
    registry = _parse(
        "# Build everything\n"
        "@build:\n"
        "    @echo loud\n"
        "    -false\n"
        "    @-true\n"
    )

    recipe = registry.recipes["build"]
    assert recipe.doc == "Build everything"
    assert recipe.quiet is True
    first, second, third = recipe.body
    assert first.echo_toggle and not first.ignore_errors
    assert second.ignore_errors and not second.echo_toggle
    assert third.echo_toggle and third.ignore_errors
    assert recipe.is_echoed(first) is True
    assert recipe.is_echoed(second) is False


def test_doc_comment_requires_adjacent_header() -> None:
    registry = _parse("# detached\n\nbuild:\n    true\n")

    assert registry.recipes["build"].doc is None


def test_recipe_without_body() -> None:
    registry = _parse("noop:\nbuild:\n    true\n")

    assert registry.recipes["noop"].body == ()


def test_duplicate_recipe_rejected() -> None:
    with pytest.raises(ParseError) as excinfo:
        _parse("build:\n    true\nbuild:\n    false\n")

    assert excinfo.value.kind is ParseErrorKind.DUPLICATE_RECIPE
    assert excinfo.value.location.line == 3


def test_duplicate_binding_rejected() -> None:
    with pytest.raises(ParseError) as excinfo:
        _parse('a := "1"\nexport a := "2"\n')

    assert excinfo.value.kind is ParseErrorKind.DUPLICATE_BINDING


def test_required_parameter_after_default_rejected() -> None:
    with pytest.raises(ParseError) as excinfo:
        _parse("publish value='1' prover:\n    true\n")

    assert excinfo.value.kind is ParseErrorKind.INVALID_PARAMETER_ORDER
    assert excinfo.value.location.column == len("publish value='1' ") + 1


@pytest.mark.parametrize(
    "text",
    [
        "    echo orphan\n",
        "build\n    true\n",
        "build: extra\n",
        "build a a:\n    true\n",
        "build a=unquoted:\n    true\n",
        "x := 'unterminated\n",
        "x :=\n",
        'x := "bad \\q escape"\n',
        "build:\n    echo {{ name\n",
        "build:\n    echo {{ bad name }}\n",
        "set shell := ['bash', '-c']\n",
    ],
)
def test_syntax_errors(text: str) -> None:
    with pytest.raises(ParseError) as excinfo:
        _parse(text)

    assert excinfo.value.kind is ParseErrorKind.SYNTAX_ERROR
    assert str(excinfo.value).startswith("/work/justfile:")


def test_compile_template_reports_unterminated_column() -> None:
    with pytest.raises(ParseError) as excinfo:
        compile_template("ab {{ x", SourceLocation(path="f", line=3, column=5))

    assert excinfo.value.location == SourceLocation(path="f", line=3, column=8)


def test_signature_round_trips_defaults() -> None:
    registry = _parse("publish value='12345678' prover=\"it's\":\n    true\n")

    assert registry.recipes["publish"].signature() == "publish value='12345678' prover=\"it's\""


def test_invalid_utf8_is_a_located_parse_error(tmp_path: Path) -> None:
    path = tmp_path / "justfile"
    path.write_bytes(b"build:\n    echo \xff\xfe\n")

    with pytest.raises(ParseError) as excinfo:
        load_recipe_file(path)

    assert excinfo.value.kind is ParseErrorKind.SYNTAX_ERROR
    assert excinfo.value.location == SourceLocation(path=str(path), line=2, column=10)
    assert "not valid UTF-8" in str(excinfo.value)


def test_unreadable_recipe_file_is_a_parse_error(tmp_path: Path) -> None:
    directory = tmp_path / "justfile"
    directory.mkdir()

    with pytest.raises(ParseError, match="cannot read recipe file") as excinfo:
        load_recipe_file(directory)

    assert excinfo.value.kind is ParseErrorKind.SYNTAX_ERROR
