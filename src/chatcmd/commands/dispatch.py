"""Recursive command dispatch.

One level of dispatch sees a container, the command name and the raw text
after it. The name selects candidates; candidates that cannot accept the token
count are dropped before any conversion; mentions the survivors could need are
fetched once; then containers are entered first and leaves are tried in
declaration order until one converts all of its arguments.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import Any

from ..logging import bind_dispatch_context, clear_context, get_logger
from ..model import IncomingMessage
from ..transport import EntityLookup, Transport
from .configuration import CommandConfiguration
from .events import (
    BadArgumentCount,
    BadArguments,
    CommandEvent,
    DispatchOutcome,
    FailedArgument,
    FailureEvent,
    Invoked,
    NoCommandFound,
    RootInvocation,
    Unspecified,
)
from .parse import count_tokens, split_first, strip_prefix
from .pipeline import PipelineSuccess, convert_arguments
from .prefetch import prefetch_mentions, required_mentions
from .tree import CommandNode, Container, Leaf, validate_tree

logger = get_logger(__name__)


async def call_handler(handler: Callable[..., Any], *args: Any) -> Any:
    result = handler(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class Dispatcher:
    def __init__(
        self,
        root: Container,
        configuration: CommandConfiguration | None = None,
    ) -> None:
        self.root = root
        self.configuration = configuration or CommandConfiguration()
        validate_tree(root, self.configuration.converters)

    async def dispatch_message(
        self,
        message: IncomingMessage,
        *,
        lookup: EntityLookup | None = None,
        transport: Transport | None = None,
        additional_context: Any = None,
    ) -> DispatchOutcome | None:
        """Route one message; ``None`` means it was not addressed to us."""
        config = self.configuration
        prefix = config.resolve_prefix(message)
        body = strip_prefix(message.text, prefix)
        if body is None:
            logger.debug(
                "dispatch.ignored", reason="no_prefix", message_id=message.message_id
            )
            return None
        name, rest = split_first(body, config)
        if not name:
            logger.debug(
                "dispatch.ignored", reason="empty_name", message_id=message.message_id
            )
            return None
        invocation = RootInvocation(
            message=message,
            configuration=config,
            prefix=prefix,
            root_command_name=name,
            raw_arguments=rest,
            lookup=lookup,
            transport=transport,
            additional_context=additional_context,
        )
        bind_dispatch_context(
            message_id=message.message_id,
            channel_id=message.channel_id,
            server_id=message.server_id,
            command=name,
        )
        try:
            return await self.dispatch_level(self.root, name, rest, invocation)
        finally:
            clear_context()

    async def dispatch_level(
        self,
        container: Container,
        name: str,
        rest: str,
        invocation: RootInvocation,
        path: tuple[str, ...] = (),
    ) -> DispatchOutcome:
        config = invocation.configuration
        matches = [child for child in container.children if child.has_name(name)]
        if not matches:
            return await self._fail(
                container,
                NoCommandFound(
                    root=invocation, command_name=name, raw_arguments=rest, path=path
                ),
            )

        count = count_tokens(rest, config)
        candidates: list[CommandNode] = [
            node
            for node in matches
            if isinstance(node, Container)
            or node.accepts_count(count, config.converters)
        ]
        if not candidates:
            return await self._fail(
                container,
                BadArgumentCount(
                    root=invocation, command_name=name, raw_arguments=rest, path=path
                ),
            )
        logger.debug(
            "dispatch.candidates",
            command=name,
            path=list(path),
            tokens=count,
            candidates=len(candidates),
        )

        await prefetch_mentions(
            invocation, required_mentions(candidates, config.converters)
        )

        for node in candidates:
            if isinstance(node, Container):
                return await self._enter(node, name, rest, invocation, path)

        failures: list[FailedArgument] = []
        for node in candidates:
            match node:
                case Leaf():
                    outcome = convert_arguments(node, rest, invocation)
                    if isinstance(outcome, PipelineSuccess):
                        event = CommandEvent(
                            root=invocation,
                            command_name=name,
                            arguments=rest,
                            path=path,
                        )
                        result = await call_handler(
                            node.handler, event, *outcome.values
                        )
                        logger.info("dispatch.invoked", command=name, path=list(path))
                        return Invoked(event=event, node=node, result=result)
                    failures.append(outcome)
        return await self._fail(
            container,
            BadArguments(
                root=invocation,
                command_name=name,
                raw_arguments=rest,
                path=path,
                failures=tuple(failures),
            ),
        )

    async def _enter(
        self,
        container: Container,
        name: str,
        rest: str,
        invocation: RootInvocation,
        path: tuple[str, ...],
    ) -> DispatchOutcome:
        inner_path = (*path, container.name)
        sub_name, sub_rest = split_first(rest, invocation.configuration)
        if sub_name:
            return await self.dispatch_level(
                container, sub_name, sub_rest, invocation, inner_path
            )
        if container.index is None:
            return await self._fail(
                container,
                Unspecified(
                    root=invocation,
                    command_name=name,
                    raw_arguments=rest,
                    path=inner_path,
                ),
            )
        event = CommandEvent(
            root=invocation, command_name=name, arguments=rest, path=inner_path
        )
        result = await call_handler(container.index, event)
        logger.info("dispatch.invoked", command=name, path=list(inner_path))
        return Invoked(event=event, node=container, result=result)

    async def _fail(self, container: Container, failure: FailureEvent) -> FailureEvent:
        logger.info(
            "dispatch.failed",
            kind=str(failure.kind),
            command=failure.command_name,
            path=list(failure.path),
        )
        handler = container.fallback_for(failure.kind)
        if handler is not None:
            await call_handler(handler, failure)
        return failure
