"""Command routing and argument conversion."""

from __future__ import annotations

from .configuration import CommandConfiguration
from .converters import Converter, ConverterRegistry, default_converters
from .dispatch import Dispatcher
from .events import (
    BadArgumentCount,
    BadArguments,
    CommandEvent,
    FailedArgument,
    FailureEvent,
    FailureKind,
    Invoked,
    NoCommandFound,
    RootInvocation,
    Unspecified,
)
from .module import CommandModule
from .parse import SplitPolicy
from .tree import (
    Arg,
    ArgumentSpec,
    CommandDeclarationError,
    CommandGroup,
    Container,
    Leaf,
    Pattern,
    Rest,
)

__all__ = [
    "Arg",
    "ArgumentSpec",
    "BadArgumentCount",
    "BadArguments",
    "CommandConfiguration",
    "CommandDeclarationError",
    "CommandEvent",
    "CommandGroup",
    "CommandModule",
    "Container",
    "Converter",
    "ConverterRegistry",
    "Dispatcher",
    "FailedArgument",
    "FailureEvent",
    "FailureKind",
    "Invoked",
    "Leaf",
    "NoCommandFound",
    "Pattern",
    "Rest",
    "RootInvocation",
    "SplitPolicy",
    "Unspecified",
    "default_converters",
]
