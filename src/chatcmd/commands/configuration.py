from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from ..model import IncomingMessage
from .converters import Converter, ConverterRegistry
from .parse import SplitPolicy, canonical_separator

DEFAULT_PREFIX = "/"
DEFAULT_SEPARATORS: frozenset[str] = frozenset({" ", "\t", "\n"})
DEFAULT_SPLIT_POLICY = SplitPolicy.DROP_EMPTY

type PrefixResolver = Callable[[IncomingMessage], str]


@dataclass(frozen=True, slots=True)
class CommandConfiguration:
    """Settings shared by every dispatch of one command module.

    ``prefix`` is either a fixed string or a callable returning the prefix for a
    given message (per-server prefixes and the like). ``converters`` may be a
    full ``ConverterRegistry`` or a mapping of extra/overriding entries that is
    merged over the built-ins.
    """

    prefix: str | PrefixResolver = DEFAULT_PREFIX
    separators: frozenset[str] = DEFAULT_SEPARATORS
    split_policy: SplitPolicy = DEFAULT_SPLIT_POLICY
    converters: ConverterRegistry = field(default_factory=ConverterRegistry.defaults)

    def __post_init__(self) -> None:
        separators = frozenset(self.separators)
        if not separators:
            raise ValueError("at least one separator is required")
        for separator in separators:
            if not isinstance(separator, str) or len(separator) != 1:
                raise ValueError(
                    f"separators must be single characters, got {separator!r}"
                )
        object.__setattr__(self, "separators", separators)
        object.__setattr__(self, "split_policy", SplitPolicy(self.split_policy))
        if not isinstance(self.converters, ConverterRegistry):
            object.__setattr__(
                self,
                "converters",
                ConverterRegistry.defaults().with_converters(self.converters),
            )

    @classmethod
    def create(
        cls,
        prefix: str | PrefixResolver = DEFAULT_PREFIX,
        *,
        separators: Iterable[str] = DEFAULT_SEPARATORS,
        split_policy: SplitPolicy | str = DEFAULT_SPLIT_POLICY,
        converters: Mapping[Any, Converter] | None = None,
    ) -> CommandConfiguration:
        registry = ConverterRegistry.defaults()
        if converters:
            registry = registry.with_converters(converters)
        return cls(
            prefix=prefix,
            separators=frozenset(separators),
            split_policy=SplitPolicy(split_policy),
            converters=registry,
        )

    @property
    def canonical_separator(self) -> str:
        return canonical_separator(self.separators)

    def resolve_prefix(self, message: IncomingMessage) -> str:
        if isinstance(self.prefix, str):
            return self.prefix
        return self.prefix(message)

    def with_converters(
        self, converters: Mapping[Any, Converter]
    ) -> CommandConfiguration:
        return replace(self, converters=self.converters.with_converters(converters))
