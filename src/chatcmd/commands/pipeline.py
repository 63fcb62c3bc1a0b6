from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from ..logging import get_logger
from .configuration import CommandConfiguration
from .converters import ConversionFailure, Converted
from .events import FailedArgument, RootInvocation
from .tree import Leaf

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class PipelineSuccess:
    values: tuple[Any, ...]


def _fail(
    leaf: Leaf, spec: Any, reason: str, remaining: str
) -> FailedArgument:
    logger.debug(
        "pipeline.argument_failed",
        command=leaf.name,
        argument=None if spec is None else spec.name,
        reason=reason,
    )
    return FailedArgument(
        command=leaf, argument=spec, reason=reason, remaining=remaining
    )


def convert_arguments(
    leaf: Leaf, text: str, invocation: RootInvocation
) -> PipelineSuccess | FailedArgument:
    """Convert ``text`` into the leaf's argument values, in declared order.

    ``text`` starts at the first argument. Each converter consumes a prefix of
    what is left, including the separator after its value. The first failing
    argument ends the attempt; text left over after the last argument is a
    failure too.
    """
    config = invocation.configuration
    remaining = text
    values: list[Any] = []
    for spec in leaf.arguments:
        if spec.optional and not remaining:
            values.append(spec.default)
            continue
        converter = config.converters.get(spec.type)
        if converter is None:
            return _fail(leaf, spec, f"no converter for {spec.type!r}", remaining)
        try:
            result = converter.convert(remaining, invocation, spec)
        except (ValueError, TypeError, ArithmeticError) as exc:
            return _fail(leaf, spec, f"{type(exc).__name__}: {exc}", remaining)
        match result:
            case Converted(value=value, remaining=rest):
                values.append(value)
                remaining = rest
            case ConversionFailure(reason=reason):
                return _fail(leaf, spec, reason, remaining)
    if remaining:
        return _fail(leaf, None, f"unexpected trailing text {remaining!r}", remaining)
    return PipelineSuccess(values=tuple(values))


def render_arguments(
    leaf: Leaf, values: Sequence[Any], configuration: CommandConfiguration
) -> str:
    """Serialize converted values back into argument text.

    ``None`` values of optional arguments are left out. Raises ``ValueError``
    for a value whose type has no renderer.
    """
    separator = configuration.canonical_separator
    parts: list[str] = []
    for spec, value in zip(leaf.arguments, values, strict=True):
        if value is None and spec.optional:
            continue
        if isinstance(value, list):
            parts.extend(_render_one(spec.type, item, configuration) for item in value)
            continue
        parts.append(_render_one(spec.type, value, configuration))
    return separator.join(parts)


def _render_one(tp: Any, value: Any, configuration: CommandConfiguration) -> str:
    if tp == list[str]:
        return str(value)
    converter = configuration.converters.get(tp)
    if converter is None or converter.render is None:
        raise ValueError(f"no renderer for {tp!r}")
    return converter.render(value)
