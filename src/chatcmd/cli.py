from __future__ import annotations

import importlib
from pathlib import Path
from typing import Any

import anyio
import msgspec
import typer
from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from . import __version__
from .commands import (
    CommandDeclarationError,
    CommandGroup,
    CommandModule,
    Container,
    Invoked,
    Leaf,
)
from .commands.events import BadArguments, DispatchOutcome
from .commands.help import argument_usage
from .config import ConfigError
from .logging import setup_logging
from .model import Channel, EntityId, IncomingMessage, Member, Mentions, Role
from .schemas import decode_message_created
from .settings import CommandSettings, load_settings, load_settings_if_exists
from .transport import MessageRef, RenderedMessage, SendOptions


class FixtureLookup:
    """Entity lookup answering from ``id=name`` pairs given on the command line."""

    def __init__(
        self,
        members: dict[str, str],
        roles: dict[str, str],
        channels: dict[str, str],
    ) -> None:
        self.members = members
        self.roles = roles
        self.channels = channels

    async def fetch_member(
        self, server_id: EntityId | None, member_id: EntityId
    ) -> Member:
        return Member(id=member_id, name=self._name(self.members, member_id))

    async def fetch_role(self, server_id: EntityId | None, role_id: EntityId) -> Role:
        return Role(id=role_id, name=self._name(self.roles, role_id))

    async def fetch_channel(
        self, server_id: EntityId | None, channel_id: EntityId
    ) -> Channel:
        return Channel(id=channel_id, name=self._name(self.channels, channel_id))

    @staticmethod
    def _name(table: dict[str, str], entity_id: EntityId) -> str:
        try:
            return table[entity_id]
        except KeyError:
            raise LookupError(f"no fixture for id {entity_id}") from None


class ConsoleTransport:
    def __init__(self, console: Console) -> None:
        self.console = console
        self._next_id = 0

    async def send(
        self,
        *,
        channel_id: EntityId,
        message: RenderedMessage,
        options: SendOptions | None = None,
    ) -> MessageRef | None:
        self._next_id += 1
        reply = options is not None and options.reply_to is not None
        label = "reply" if reply else "send"
        self.console.print(
            f"[cyan]{label}[/] #{escape(channel_id)}: {escape(message.text)}"
        )
        return MessageRef(channel_id=channel_id, message_id=f"local-{self._next_id}")


def load_commands(target: str) -> Container:
    """Import ``package.module:attribute`` and build it into a command tree."""
    module_name, sep, attribute = target.partition(":")
    if not sep or not module_name or not attribute:
        raise typer.BadParameter(f"expected module:attribute, got {target!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise typer.BadParameter(f"cannot import {module_name!r}: {exc}") from exc
    obj: Any = module
    for part in attribute.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError:
            raise typer.BadParameter(
                f"{module_name!r} has no attribute {attribute!r}"
            ) from None
    if isinstance(obj, CommandModule):
        return obj.root
    if isinstance(obj, CommandGroup):
        return obj.build()
    if isinstance(obj, Container):
        return obj
    raise typer.BadParameter(
        f"{target!r} is not a CommandGroup, Container or CommandModule"
    )


def parse_fixtures(values: list[str] | None, option: str) -> dict[str, str]:
    fixtures: dict[str, str] = {}
    for value in values or []:
        entity_id, sep, name = value.partition("=")
        if not sep or not entity_id or not name:
            raise typer.BadParameter(f"{option} expects id=name, got {value!r}")
        fixtures[entity_id] = name
    return fixtures


def _settings(config: Path | None) -> CommandSettings:
    if config is not None:
        settings, _ = load_settings(config)
        return settings
    loaded = load_settings_if_exists()
    if loaded is None:
        return CommandSettings()
    return loaded[0]


def _render_tree(root: Container) -> Tree:
    tree = Tree("[bold]commands[/]")

    def add(branch: Tree, container: Container) -> None:
        for node in container.children:
            names = escape(" | ".join((node.name, *node.aliases)))
            match node:
                case Container():
                    label = f"[magenta]{names}[/]"
                    if node.index is not None:
                        label += " [dim](index)[/]"
                    add(branch.add(label), node)
                case Leaf():
                    usage = escape(
                        " ".join(argument_usage(spec) for spec in node.arguments)
                    )
                    label = f"[green]{names}[/] {usage}".rstrip()
                    if node.description:
                        label += f" [dim]- {escape(node.description)}[/]"
                    branch.add(label)

    add(tree, root)
    return tree


def _print_outcome(console: Console, outcome: DispatchOutcome | None) -> None:
    match outcome:
        case None:
            console.print("[yellow]ignored[/] (no prefix or empty command name)")
        case Invoked(event=event, node=node):
            path = " ".join((*event.path, node.name))
            console.print(f"[green]invoked[/] {path}")
        case BadArguments(failures=failures):
            console.print(f"[red]bad_arguments[/] {escape(outcome.command_name)}")
            for failure in failures:
                argument = "-" if failure.argument is None else failure.argument.name
                console.print(
                    f"  {failure.command.name} {argument}: {escape(failure.reason)}"
                )
        case _:
            console.print(f"[red]{outcome.kind}[/] {escape(outcome.command_name)}")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


def app_main(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show the version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Inspect and dry-run chat command trees."""


def tree_cmd(
    app_target: str = typer.Argument(..., metavar="APP", help="module:attribute"),
) -> None:
    """Print the command tree of APP."""
    console = Console()
    try:
        root = load_commands(app_target)
    except CommandDeclarationError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    console.print(_render_tree(root))


def dispatch_cmd(
    app_target: str = typer.Argument(..., metavar="APP", help="module:attribute"),
    text: str | None = typer.Argument(None, help="Message text to dispatch."),
    member: list[str] | None = typer.Option(
        None, "--member", help="Mentioned member as id=name (repeatable)."
    ),
    role: list[str] | None = typer.Option(
        None, "--role", help="Mentioned role as id=name (repeatable)."
    ),
    channel: list[str] | None = typer.Option(
        None, "--channel", help="Mentioned channel as id=name (repeatable)."
    ),
    event: Path | None = typer.Option(
        None, "--event", help="JSON message-created payload to dispatch."
    ),
    config: Path | None = typer.Option(
        None, "--config", help="Path to the chatcmd TOML settings."
    ),
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Verbose logs."),
) -> None:
    """Dispatch TEXT (or an --event payload) against APP without a chat service."""
    setup_logging(debug=debug)
    console = Console()
    members = parse_fixtures(member, "--member")
    roles = parse_fixtures(role, "--role")
    channels = parse_fixtures(channel, "--channel")
    try:
        settings = _settings(config)
        root = load_commands(app_target)
        module = CommandModule(
            root,
            configuration=settings.to_configuration(),
            lookup=FixtureLookup(members, roles, channels),
            transport=ConsoleTransport(console),
            failure_buffer=settings.failure_buffer,
        )
        if event is not None:
            message = decode_message_created(event.read_bytes())
        elif text is not None:
            message = IncomingMessage(
                text=text,
                channel_id="cli",
                message_id="cli-1",
                mentions=Mentions(
                    members=tuple(members),
                    roles=tuple(roles),
                    channels=tuple(channels),
                ),
            )
        else:
            raise typer.BadParameter("pass TEXT or --event")
    except (
        ConfigError,
        CommandDeclarationError,
        msgspec.DecodeError,
        OSError,
    ) as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    outcome = anyio.run(module.handle_message, message)
    _print_outcome(console, outcome)


def create_app() -> typer.Typer:
    app = typer.Typer(
        add_completion=False,
        no_args_is_help=True,
        help="Inspect and dry-run chat command trees.",
    )
    app.callback()(app_main)
    app.command(name="tree")(tree_cmd)
    app.command(name="dispatch")(dispatch_cmd)
    return app


def main() -> None:
    app = create_app()
    app()


if __name__ == "__main__":
    main()
