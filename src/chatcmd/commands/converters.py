"""Argument converters and the registry that maps argument types to them.

A converter receives the text that is still unconsumed, the per-message
invocation (for configuration and known mention entities) and the argument it
is converting. It returns either ``Converted`` with the value and the text left
after the consumed token(s), or ``ConversionFailure``.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, NewType

from pydantic import AnyUrl, TypeAdapter, ValidationError

from ..model import Channel, Entity, Member, MentionKind, Role
from .parse import is_boundary, skip_separators, split_arguments, take_token

if TYPE_CHECKING:
    from .events import RootInvocation
    from .tree import ArgumentSpec

Char = NewType("Char", str)
HashId = NewType("HashId", str)
SByte = NewType("SByte", int)
Byte = NewType("Byte", int)
Short = NewType("Short", int)
UShort = NewType("UShort", int)
Int = NewType("Int", int)
UInt = NewType("UInt", int)
Long = NewType("Long", int)
ULong = NewType("ULong", int)

INTEGER_RANGES: dict[Any, tuple[int, int]] = {
    SByte: (-(2**7), 2**7 - 1),
    Byte: (0, 2**8 - 1),
    Short: (-(2**15), 2**15 - 1),
    UShort: (0, 2**16 - 1),
    Int: (-(2**31), 2**31 - 1),
    UInt: (0, 2**32 - 1),
    Long: (-(2**63), 2**63 - 1),
    ULong: (0, 2**64 - 1),
}

MENTION_SIGILS: dict[MentionKind, str] = {
    "member": "@",
    "role": "@",
    "channel": "#",
}

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_DECIMAL_RE = re.compile(
    r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"
)
_FLOAT_WORDS = {"nan", "inf", "+inf", "-inf", "infinity", "+infinity", "-infinity"}
_HASH_ID_RE = re.compile(r"[0-9A-Za-z]{8}")


@dataclass(frozen=True, slots=True)
class Converted:
    # remaining starts after the separator that ended the value
    value: Any
    remaining: str


@dataclass(frozen=True, slots=True)
class ConversionFailure:
    reason: str


type ConversionResult = Converted | ConversionFailure
type ConvertFn = Callable[[str, RootInvocation, ArgumentSpec], ConversionResult]
type Parser = Callable[[str], Any]


@dataclass(frozen=True, slots=True)
class Converter:
    convert: ConvertFn
    render: Callable[[Any], str] | None = None
    mention: MentionKind | None = None
    # may consume more than one separator-delimited token
    greedy: bool = False
    rest_only: bool = False


class ConverterRegistry(Mapping[Any, Converter]):
    """Immutable mapping of argument type to converter."""

    __slots__ = ("_converters",)

    def __init__(self, converters: Mapping[Any, Converter] | None = None) -> None:
        self._converters: dict[Any, Converter] = dict(converters or {})

    def __getitem__(self, key: Any) -> Converter:
        return self._converters[key]

    def __iter__(self) -> Iterator[Any]:
        return iter(self._converters)

    def __len__(self) -> int:
        return len(self._converters)

    def __repr__(self) -> str:
        return f"ConverterRegistry({len(self)} types)"

    def with_converter(self, key: Any, converter: Converter) -> ConverterRegistry:
        return self.with_converters({key: converter})

    def with_converters(
        self, converters: Mapping[Any, Converter]
    ) -> ConverterRegistry:
        # later entries replace earlier ones for the same type
        merged = dict(self._converters)
        merged.update(converters)
        return ConverterRegistry(merged)

    @classmethod
    def defaults(cls) -> ConverterRegistry:
        return cls(_DEFAULT_CONVERTERS)


def token_converter(
    parse: Parser, *, render: Callable[[Any], str] | None = str
) -> Converter:
    """Build a converter that consumes exactly one token and parses it.

    ``parse`` may raise ``ValueError``, ``TypeError`` or ``ArithmeticError``;
    those become a ``ConversionFailure``.
    """

    def convert(
        text: str, invocation: RootInvocation, spec: ArgumentSpec
    ) -> ConversionResult:
        taken = take_token(text, invocation.configuration)
        if taken is None:
            return ConversionFailure(f"missing value for {spec.name}")
        token, remaining = taken
        try:
            value = parse(token)
        except (ValueError, TypeError, ArithmeticError) as exc:
            return ConversionFailure(f"invalid {spec.name} {token!r}: {exc}")
        return Converted(value, remaining)

    return Converter(convert=convert, render=render)


def adapter_parser(tp: Any) -> Parser:
    adapter = TypeAdapter(tp)

    def parse(token: str) -> Any:
        try:
            return adapter.validate_python(token)
        except ValidationError as exc:
            errors = exc.errors()
            message = errors[0]["msg"] if errors else str(exc)
            raise ValueError(message) from None

    return parse


def _parse_str(token: str) -> str:
    return token


def _parse_int(token: str) -> int:
    if not _INTEGER_RE.fullmatch(token):
        raise ValueError("not an integer")
    return int(token)


def _ranged_int(tp: Any) -> Parser:
    low, high = INTEGER_RANGES[tp]

    def parse(token: str) -> int:
        value = _parse_int(token)
        if not low <= value <= high:
            raise ValueError(f"out of range [{low}, {high}]")
        return value

    return parse


def _parse_float(token: str) -> float:
    if token.lower() in _FLOAT_WORDS:
        return float(token.lower().replace("infinity", "inf"))
    if not _DECIMAL_RE.fullmatch(token):
        raise ValueError("not a number")
    return float(token)


def _parse_decimal(token: str) -> Decimal:
    if not _DECIMAL_RE.fullmatch(token):
        raise ValueError("not a decimal number")
    try:
        return Decimal(token)
    except InvalidOperation as exc:
        raise ValueError("not a decimal number") from exc


def _parse_bool(token: str) -> bool:
    lowered = token.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise ValueError("expected true or false")


def _render_bool(value: Any) -> str:
    return "true" if value else "false"


def _parse_char(token: str) -> str:
    if len(token) != 1:
        raise ValueError("expected a single character")
    return token


def _parse_hash_id(token: str) -> str:
    if not _HASH_ID_RE.fullmatch(token):
        raise ValueError("expected 8 alphanumeric characters")
    return token


def _parse_uuid(token: str) -> uuid.UUID:
    return uuid.UUID(token)


def _convert_rest_text(
    text: str, invocation: RootInvocation, spec: ArgumentSpec
) -> ConversionResult:
    if not spec.is_rest:
        return _STRING.convert(text, invocation, spec)
    if not text:
        return ConversionFailure(f"missing value for {spec.name}")
    return Converted(text, "")


def _convert_rest_tokens(
    text: str, invocation: RootInvocation, spec: ArgumentSpec
) -> ConversionResult:
    tokens = split_arguments(text, invocation.configuration)
    if not tokens:
        return ConversionFailure(f"missing value for {spec.name}")
    return Converted(tokens, "")


def _convert_match(
    text: str, invocation: RootInvocation, spec: ArgumentSpec
) -> ConversionResult:
    if spec.pattern is None:
        return ConversionFailure(f"no pattern declared for {spec.name}")
    config = invocation.configuration
    match = spec.pattern.match(text)
    if match is None or match.end() == 0:
        return ConversionFailure(
            f"{spec.name} does not match {spec.pattern.pattern!r}"
        )
    if not is_boundary(text, match.end(), config):
        return ConversionFailure(f"{spec.name} match ends inside a token")
    return Converted(match, skip_separators(text[match.end() :], config))


def _convert_matches(
    text: str, invocation: RootInvocation, spec: ArgumentSpec
) -> ConversionResult:
    if spec.pattern is None:
        return ConversionFailure(f"no pattern declared for {spec.name}")
    matches = list(spec.pattern.finditer(text))
    if not matches:
        return ConversionFailure(
            f"{spec.name} does not match {spec.pattern.pattern!r}"
        )
    return Converted(matches, "")


def mention_converter(kind: MentionKind) -> Converter:
    """Resolve ``@name`` / ``#name`` against entities already fetched.

    The display name must be a literal prefix of the text after the sigil and
    end at a separator or at the end of the text. When several known names
    qualify, the longest one wins.
    """
    sigil = MENTION_SIGILS[kind]

    def convert(
        text: str, invocation: RootInvocation, spec: ArgumentSpec
    ) -> ConversionResult:
        config = invocation.configuration
        if not text.startswith(sigil):
            return ConversionFailure(f"{spec.name} must start with {sigil!r}")
        body = text[len(sigil) :]
        best: Entity | None = None
        for entity in invocation.known(kind):
            name = entity.name
            if not name or not body.startswith(name):
                continue
            if not is_boundary(body, len(name), config):
                continue
            if best is None or len(name) > len(best.name):
                best = entity
        if best is None:
            return ConversionFailure(f"no known {kind} matches {spec.name}")
        return Converted(best, skip_separators(body[len(best.name) :], config))

    def render(value: Any) -> str:
        return f"{sigil}{value.name}"

    return Converter(convert=convert, render=render, mention=kind, greedy=True)


_STRING = token_converter(_parse_str)

_DEFAULT_CONVERTERS: dict[Any, Converter] = {
    str: Converter(convert=_convert_rest_text, render=str),
    int: token_converter(_parse_int),
    **{tp: token_converter(_ranged_int(tp)) for tp in INTEGER_RANGES},
    float: token_converter(_parse_float, render=repr),
    Decimal: token_converter(_parse_decimal),
    bool: token_converter(_parse_bool, render=_render_bool),
    Char: token_converter(_parse_char),
    HashId: token_converter(_parse_hash_id),
    uuid.UUID: token_converter(_parse_uuid),
    datetime: token_converter(adapter_parser(datetime), render=datetime.isoformat),
    date: token_converter(adapter_parser(date), render=date.isoformat),
    time: token_converter(adapter_parser(time), render=time.isoformat),
    timedelta: token_converter(adapter_parser(timedelta), render=None),
    AnyUrl: token_converter(adapter_parser(AnyUrl)),
    re.Match: Converter(convert=_convert_match, greedy=True),
    list[re.Match]: Converter(convert=_convert_matches, greedy=True, rest_only=True),
    list[str]: Converter(
        convert=_convert_rest_tokens, render=None, greedy=True, rest_only=True
    ),
    Member: mention_converter("member"),
    Role: mention_converter("role"),
    Channel: mention_converter("channel"),
}


def default_converters() -> ConverterRegistry:
    return ConverterRegistry.defaults()
