"""Command declarations and the immutable command tree built from them.

Handlers are registered on a ``CommandGroup`` (decorators or ``add_command``)
and ``CommandGroup.build()`` produces the tree of ``Leaf`` and ``Container``
nodes the dispatcher walks::

    commands = CommandGroup()

    @commands.command(aliases=("echo",))
    async def say(event: CommandEvent, words: list[str]) -> None:
        await event.reply(" ".join(words))

    config = commands.group("config")

    @config.command()
    async def prefix(event: CommandEvent, value: str) -> None: ...

    tree = commands.build()
"""

from __future__ import annotations

import inspect
import re
import types
import typing
from collections import Counter
from collections.abc import Awaitable, Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Annotated, Any, TypeVar, get_args, get_origin

from ..model import MentionKind
from .events import FailureKind

if TYPE_CHECKING:
    from .converters import Converter
    from .events import FailureEvent

type CommandHandler = Callable[..., Awaitable[Any] | Any]
type FailureHandler = Callable[[FailureEvent], Awaitable[Any] | Any]

H = TypeVar("H", bound=Callable[..., Any])

REST_TYPES: tuple[Any, ...] = (str, list[str], list[re.Match])
REST_ONLY_TYPES: tuple[Any, ...] = (list[str], list[re.Match])
PATTERN_TYPES: tuple[Any, ...] = (re.Match, list[re.Match])

_NAME_SUFFIXES = ("_async", "_command")


class CommandDeclarationError(RuntimeError):
    pass


class _Missing(Enum):
    MISSING = "MISSING"

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing.MISSING


@dataclass(frozen=True, slots=True)
class Arg:
    """Extra argument metadata, attached with ``typing.Annotated``."""

    name: str | None = None
    rest: bool = False
    pattern: str | re.Pattern[str] | None = None
    description: str | None = None


def Rest(  # noqa: N802
    *, name: str | None = None, description: str | None = None
) -> Arg:
    return Arg(name=name, rest=True, description=description)


def Pattern(  # noqa: N802
    pattern: str | re.Pattern[str],
    *,
    name: str | None = None,
    rest: bool = False,
    description: str | None = None,
) -> Arg:
    return Arg(name=name, rest=rest, pattern=pattern, description=description)


@dataclass(frozen=True, slots=True)
class ArgumentSpec:
    name: str
    type: Any = str
    is_rest: bool = False
    attribute: str | None = None
    default: Any = MISSING
    pattern: re.Pattern[str] | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.pattern, str):
            object.__setattr__(self, "pattern", re.compile(self.pattern))
        if self.type in REST_ONLY_TYPES:
            object.__setattr__(self, "is_rest", True)

    @property
    def optional(self) -> bool:
        return self.default is not MISSING


def validate_arguments(command: str, arguments: Sequence[ArgumentSpec]) -> None:
    if sum(1 for spec in arguments if spec.is_rest) > 1:
        raise CommandDeclarationError(
            f"command {command!r} declares more than one rest argument"
        )
    seen_optional = False
    for position, spec in enumerate(arguments):
        if spec.is_rest:
            if position != len(arguments) - 1:
                raise CommandDeclarationError(
                    f"rest argument {spec.name!r} of command {command!r} "
                    "must be the last argument"
                )
            if spec.type not in REST_TYPES:
                raise CommandDeclarationError(
                    f"rest argument {spec.name!r} of command {command!r} must be "
                    "str, list[str] or list[re.Match]"
                )
        if spec.optional:
            seen_optional = True
        elif seen_optional:
            raise CommandDeclarationError(
                f"required argument {spec.name!r} of command {command!r} "
                "follows an optional argument"
            )
        if spec.type in PATTERN_TYPES and spec.pattern is None:
            raise CommandDeclarationError(
                f"argument {spec.name!r} of command {command!r} needs a pattern"
            )


@dataclass(frozen=True, slots=True)
class Leaf:
    name: str
    handler: CommandHandler = field(compare=False, repr=False)
    arguments: tuple[ArgumentSpec, ...] = ()
    aliases: tuple[str, ...] = ()
    description: str | None = None
    examples: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "arguments", tuple(self.arguments))
        object.__setattr__(self, "aliases", tuple(self.aliases))
        object.__setattr__(self, "examples", tuple(self.examples))
        validate_arguments(self.name, self.arguments)

    def has_name(self, name: str) -> bool:
        return name == self.name or name in self.aliases

    @property
    def required_count(self) -> int:
        return sum(1 for spec in self.arguments if not spec.optional)

    @property
    def has_rest(self) -> bool:
        return any(spec.is_rest for spec in self.arguments)

    def accepts_count(self, count: int, converters: Mapping[Any, Converter]) -> bool:
        """Cheap arity check done before any conversion is attempted."""
        if count < self.required_count:
            return False
        if self.has_rest:
            return True
        for spec in self.arguments:
            converter = converters.get(spec.type)
            if converter is not None and converter.greedy:
                return True
        return count <= len(self.arguments)

    def mention_counts(
        self, converters: Mapping[Any, Converter]
    ) -> Counter[MentionKind]:
        counts: Counter[MentionKind] = Counter()
        for spec in self.arguments:
            converter = converters.get(spec.type)
            if converter is not None and converter.mention is not None:
                counts[converter.mention] += 1
        return counts


@dataclass(frozen=True, slots=True)
class Container:
    name: str
    children: tuple[CommandNode, ...] = ()
    aliases: tuple[str, ...] = ()
    index: CommandHandler | None = field(default=None, compare=False, repr=False)
    fallbacks: Mapping[FailureKind, FailureHandler] = field(
        default_factory=dict, compare=False, repr=False
    )
    description: str | None = None
    examples: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "children", tuple(self.children))
        object.__setattr__(self, "aliases", tuple(self.aliases))
        object.__setattr__(self, "examples", tuple(self.examples))
        object.__setattr__(
            self, "fallbacks", types.MappingProxyType(dict(self.fallbacks))
        )

    def has_name(self, name: str) -> bool:
        return name == self.name or name in self.aliases

    @property
    def unknown(self) -> FailureHandler | None:
        return self.fallbacks.get(FailureKind.NO_COMMAND_FOUND)

    def fallback_for(self, kind: FailureKind) -> FailureHandler | None:
        handler = self.fallbacks.get(kind)
        if handler is None and kind is FailureKind.UNSPECIFIED:
            return self.unknown
        return handler

    def walk(
        self, path: tuple[str, ...] = ()
    ) -> Iterator[tuple[tuple[str, ...], CommandNode]]:
        for child in self.children:
            yield path, child
            if isinstance(child, Container):
                yield from child.walk((*path, child.name))


type CommandNode = Leaf | Container


def validate_tree(root: Container, converters: Mapping[Any, Converter]) -> None:
    """Check every argument type against a converter registry."""
    for path, node in root.walk():
        if not isinstance(node, Leaf):
            continue
        qualified = " ".join((*path, node.name))
        for spec in node.arguments:
            converter = converters.get(spec.type)
            if converter is None:
                raise CommandDeclarationError(
                    f"no converter registered for {spec.type!r} "
                    f"(argument {spec.name!r} of command {qualified!r})"
                )
            if converter.rest_only and not spec.is_rest:
                raise CommandDeclarationError(
                    f"argument {spec.name!r} of command {qualified!r} "
                    "can only be used as the rest argument"
                )


def command_name_for(handler: Callable[..., Any]) -> str:
    name = getattr(handler, "__name__", "").lower()
    for suffix in _NAME_SUFFIXES:
        if name.endswith(suffix) and len(name) > len(suffix):
            name = name[: -len(suffix)]
    if not name or name == "<lambda>":
        raise CommandDeclarationError(
            f"cannot derive a command name from {handler!r}; pass name="
        )
    return name


def _first_doc_line(handler: Callable[..., Any]) -> str | None:
    doc = inspect.getdoc(handler)
    if not doc:
        return None
    return doc.strip().splitlines()[0]


def _unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    origin = get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) != 1:
            raise CommandDeclarationError(
                f"union argument types are not supported: {annotation!r}"
            )
        return args[0], True
    return annotation, False


def normalize_type(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if annotation is re.Match or origin is re.Match:
        return re.Match
    if origin is list:
        (item,) = get_args(annotation) or (str,)
        return list[normalize_type(item)]
    return annotation


def _spec_from_parameter(param: inspect.Parameter, annotation: Any) -> ArgumentSpec:
    marker: Arg | None = None
    if get_origin(annotation) is Annotated:
        annotation, *extras = get_args(annotation)
        marker = next((extra for extra in extras if isinstance(extra, Arg)), None)
    tp, nullable = _unwrap_optional(annotation)
    if param.default is not inspect.Parameter.empty:
        default = param.default
    else:
        default = None if nullable else MISSING
    marker = marker or Arg()
    return ArgumentSpec(
        name=marker.name or param.name,
        type=normalize_type(tp),
        is_rest=marker.rest,
        attribute=param.name,
        default=default,
        pattern=re.compile(marker.pattern)
        if isinstance(marker.pattern, str)
        else marker.pattern,
        description=marker.description,
    )


def arguments_from_signature(handler: Callable[..., Any]) -> tuple[ArgumentSpec, ...]:
    """Derive argument specs from a handler's parameters.

    The first parameter receives the ``CommandEvent`` and is not an argument.
    """
    qualname = getattr(handler, "__qualname__", repr(handler))
    signature = inspect.signature(handler)
    params = list(signature.parameters.values())
    positional = (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
    )
    if not params or params[0].kind not in positional:
        raise CommandDeclarationError(
            f"{qualname} must accept the command event as its first parameter"
        )
    try:
        hints = typing.get_type_hints(handler, include_extras=True)
    except NameError as exc:
        raise CommandDeclarationError(
            f"cannot resolve annotations of {qualname}: {exc}"
        ) from exc
    specs: list[ArgumentSpec] = []
    for param in params[1:]:
        if param.kind not in positional:
            raise CommandDeclarationError(
                f"parameter {param.name!r} of {qualname} must be positional"
            )
        specs.append(_spec_from_parameter(param, hints.get(param.name, str)))
    return tuple(specs)


class CommandGroup:
    """Mutable declaration of a command level; ``build()`` freezes it."""

    def __init__(
        self,
        name: str | None = None,
        *,
        aliases: Sequence[str] = (),
        description: str | None = None,
        examples: Sequence[str] = (),
    ) -> None:
        self.name = name
        self.aliases = tuple(aliases)
        self.description = description
        self.examples = tuple(examples)
        self._entries: list[Leaf | CommandGroup] = []
        self._index: CommandHandler | None = None
        self._fallbacks: dict[FailureKind, FailureHandler] = {}

    def __repr__(self) -> str:
        return f"CommandGroup(name={self.name!r}, entries={len(self._entries)})"

    def add_command(
        self,
        handler: CommandHandler,
        name: str | None = None,
        *,
        aliases: Sequence[str] = (),
        description: str | None = None,
        examples: Sequence[str] = (),
        arguments: Sequence[ArgumentSpec] | None = None,
    ) -> Leaf:
        leaf = Leaf(
            name=name or command_name_for(handler),
            handler=handler,
            arguments=tuple(arguments)
            if arguments is not None
            else arguments_from_signature(handler),
            aliases=tuple(aliases),
            description=description or _first_doc_line(handler),
            examples=tuple(examples),
        )
        self._entries.append(leaf)
        return leaf

    def command(
        self,
        name: str | None = None,
        *,
        aliases: Sequence[str] = (),
        description: str | None = None,
        examples: Sequence[str] = (),
        arguments: Sequence[ArgumentSpec] | None = None,
    ) -> Callable[[H], H]:
        def decorator(handler: H) -> H:
            self.add_command(
                handler,
                name,
                aliases=aliases,
                description=description,
                examples=examples,
                arguments=arguments,
            )
            return handler

        return decorator

    def group(
        self,
        name: str,
        *,
        aliases: Sequence[str] = (),
        description: str | None = None,
        examples: Sequence[str] = (),
    ) -> CommandGroup:
        return self.add_group(
            CommandGroup(
                name, aliases=aliases, description=description, examples=examples
            )
        )

    def add_group(self, group: CommandGroup) -> CommandGroup:
        if not group.name:
            raise CommandDeclarationError("nested command groups need a name")
        self._entries.append(group)
        return group

    def index(self, handler: H) -> H:
        """Register the handler run when the group is invoked without a name."""
        if self._index is not None:
            raise CommandDeclarationError(
                f"group {self.name!r} already has an index handler"
            )
        self._index = handler
        return handler

    def unknown(self, handler: H) -> H:
        """Register the fallback for unknown sub-command names."""
        return self.on_failure(FailureKind.NO_COMMAND_FOUND)(handler)

    def on_failure(self, *kinds: FailureKind) -> Callable[[H], H]:
        if not kinds:
            kinds = tuple(FailureKind)

        def decorator(handler: H) -> H:
            for kind in kinds:
                self._fallbacks[FailureKind(kind)] = handler
            return handler

        return decorator

    def build(self) -> Container:
        children: list[CommandNode] = []
        for entry in self._entries:
            if isinstance(entry, CommandGroup):
                children.append(entry.build())
            else:
                children.append(entry)
        return Container(
            name=self.name or "",
            children=tuple(children),
            aliases=self.aliases,
            index=self._index,
            fallbacks=dict(self._fallbacks),
            description=self.description,
            examples=self.examples,
        )
