from __future__ import annotations

from dataclasses import dataclass

from .configuration import CommandConfiguration
from .tree import ArgumentSpec, Container, Leaf


@dataclass(frozen=True, slots=True)
class HelpEntry:
    usage: str
    description: str | None = None
    aliases: tuple[str, ...] = ()
    examples: tuple[str, ...] = ()


def argument_usage(spec: ArgumentSpec) -> str:
    label = f"{spec.name}..." if spec.is_rest else spec.name
    return f"[{label}]" if spec.optional else f"<{label}>"


def help_entries(
    root: Container, configuration: CommandConfiguration | None = None
) -> list[HelpEntry]:
    """One entry per leaf and per group that can run on its own."""
    configuration = configuration or CommandConfiguration()
    prefix = configuration.prefix if isinstance(configuration.prefix, str) else ""
    separator = configuration.canonical_separator
    entries: list[HelpEntry] = []
    for path, node in root.walk():
        words = [*path, node.name]
        if isinstance(node, Leaf):
            words.extend(argument_usage(spec) for spec in node.arguments)
        elif node.index is None and node.description is None:
            continue
        entries.append(
            HelpEntry(
                usage=prefix + separator.join(words),
                description=node.description,
                aliases=node.aliases,
                examples=node.examples,
            )
        )
    return entries


def render_help(
    root: Container, configuration: CommandConfiguration | None = None
) -> str:
    lines: list[str] = []
    for entry in help_entries(root, configuration):
        line = entry.usage
        if entry.description:
            line = f"{line} - {entry.description}"
        lines.append(line)
        if entry.aliases:
            lines.append(f"  aliases: {', '.join(entry.aliases)}")
        lines.extend(f"  e.g. {example}" for example in entry.examples)
    return "\n".join(lines)
