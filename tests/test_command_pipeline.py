from typing import Annotated

import pytest

from chatcmd.commands.configuration import CommandConfiguration
from chatcmd.commands.converters import Converted, Converter, HashId
from chatcmd.commands.events import CommandEvent, FailedArgument
from chatcmd.commands.pipeline import (
    PipelineSuccess,
    convert_arguments,
    render_arguments,
)
from chatcmd.commands.tree import CommandGroup, Leaf, Rest
from chatcmd.model import Member
from tests.factories import make_invocation


def build_leaf(handler) -> Leaf:
    commands = CommandGroup()
    commands.add_command(handler)
    leaf = commands.build().children[0]
    assert isinstance(leaf, Leaf)
    return leaf


async def add(event: CommandEvent, a: int, b: int = 2) -> None:
    pass


async def post(
    event: CommandEvent, count: int, loud: bool, text: Annotated[str, Rest()]
) -> None:
    pass


async def tag(event: CommandEvent, who: Member, code: HashId, words: list[str]) -> None:
    pass


def run(leaf: Leaf, text: str, **kwargs):
    return convert_arguments(leaf, text, make_invocation(text, **kwargs))


def test_optional_argument_takes_default() -> None:
    leaf = build_leaf(add)
    assert run(leaf, "1") == PipelineSuccess(values=(1, 2))
    assert run(leaf, "1 5") == PipelineSuccess(values=(1, 5))


def test_failure_names_the_argument() -> None:
    leaf = build_leaf(add)
    result = run(leaf, "1 x")
    assert isinstance(result, FailedArgument)
    assert result.command is leaf
    assert result.argument is not None and result.argument.name == "b"
    assert result.remaining == "x"


def test_trailing_text_fails() -> None:
    leaf = build_leaf(add)
    result = run(leaf, "1 2 3")
    assert isinstance(result, FailedArgument)
    assert result.argument is None
    assert result.remaining == "3"


def test_rest_consumes_everything() -> None:
    leaf = build_leaf(post)
    result = run(leaf, "3 TRUE hello  big world")
    assert result == PipelineSuccess(values=(3, True, "hello  big world"))


def test_converter_exceptions_become_failures() -> None:
    def explode(text, invocation, spec):
        raise ArithmeticError("boom")

    leaf = build_leaf(add)
    config = CommandConfiguration(converters={int: Converter(convert=explode)})
    result = run(leaf, "1", configuration=config)
    assert isinstance(result, FailedArgument)
    assert "boom" in result.reason


def test_other_converter_exceptions_propagate() -> None:
    def broken(text, invocation, spec):
        raise KeyError("bug")

    leaf = build_leaf(add)
    config = CommandConfiguration(converters={int: Converter(convert=broken)})
    with pytest.raises(KeyError):
        run(leaf, "1", configuration=config)


def test_round_trip() -> None:
    leaf = build_leaf(post)
    config = CommandConfiguration()
    values = (3, True, "hello big world")
    text = render_arguments(leaf, values, config)
    assert text == "3 true hello big world"
    assert convert_arguments(leaf, text, make_invocation(text)) == PipelineSuccess(
        values=values
    )


def test_round_trip_with_mentions_and_custom_separator() -> None:
    leaf = build_leaf(tag)
    config = CommandConfiguration(separators=frozenset({","}))
    john = Member(id="2", name="John")
    values = (john, "abcd1234", ["x", "y"])
    text = render_arguments(leaf, values, config)
    assert text == "@John,abcd1234,x,y"
    invocation = make_invocation(text, configuration=config, members=[john])
    assert convert_arguments(leaf, text, invocation) == PipelineSuccess(
        values=(john, "abcd1234", ["x", "y"])
    )


def test_render_without_renderer_raises() -> None:
    leaf = build_leaf(add)
    config = CommandConfiguration(
        converters={int: Converter(convert=lambda t, i, s: Converted(0, ""))}
    )
    with pytest.raises(ValueError, match="no renderer"):
        render_arguments(leaf, (1, 2), config)
