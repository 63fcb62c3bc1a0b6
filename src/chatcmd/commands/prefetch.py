from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from typing import Any

import anyio

from ..logging import get_logger
from ..model import MENTION_KINDS, EntityId, MentionKind
from ..transport import EntityLookup
from .events import RootInvocation
from .tree import CommandNode, Leaf

logger = get_logger(__name__)


def required_mentions(
    candidates: Iterable[CommandNode], converters: Mapping[Any, Any]
) -> dict[MentionKind, int]:
    """Per kind, the most mentions any single leaf candidate could consume."""
    required: Counter[MentionKind] = Counter()
    for node in candidates:
        if not isinstance(node, Leaf):
            continue
        for kind, count in node.mention_counts(converters).items():
            required[kind] = max(required[kind], count)
    return {kind: count for kind, count in required.items() if count > 0}


async def _fetch(
    lookup: EntityLookup,
    kind: MentionKind,
    server_id: EntityId | None,
    entity_id: EntityId,
) -> Any:
    match kind:
        case "member":
            return await lookup.fetch_member(server_id, entity_id)
        case "role":
            return await lookup.fetch_role(server_id, entity_id)
        case "channel":
            return await lookup.fetch_channel(server_id, entity_id)


async def _fetch_into(
    results: list[Any],
    index: int,
    lookup: EntityLookup,
    kind: MentionKind,
    server_id: EntityId | None,
    entity_id: EntityId,
) -> None:
    results[index] = await _fetch(lookup, kind, server_id, entity_id)


async def prefetch_mentions(
    invocation: RootInvocation, required: Mapping[MentionKind, int]
) -> None:
    """Fetch the not-yet-known mentions needed by the current candidates.

    For each kind the first ``required[kind]`` references of the message are
    considered and those whose id is not known yet are looked up. Every lookup,
    whatever its kind, runs in one task group. Results are appended in the
    order the mentions appear in the message.
    """
    lookup = invocation.lookup
    if lookup is None or not required:
        return
    message = invocation.message
    pending: dict[MentionKind, list[EntityId]] = {}
    for kind in MENTION_KINDS:
        need = required.get(kind, 0)
        if need <= 0:
            continue
        known_ids = invocation.known_ids(kind)
        refs = [
            ref
            for ref in dict.fromkeys(message.mentions.of_kind(kind)[:need])
            if ref not in known_ids
        ]
        if refs:
            pending[kind] = refs
    if not pending:
        return
    results: dict[MentionKind, list[Any]] = {
        kind: [None] * len(refs) for kind, refs in pending.items()
    }
    logger.info(
        "prefetch.fetch", counts={kind: len(refs) for kind, refs in pending.items()}
    )
    try:
        async with anyio.create_task_group() as tg:
            for kind, refs in pending.items():
                for index, ref in enumerate(refs):
                    tg.start_soon(
                        _fetch_into,
                        results[kind],
                        index,
                        lookup,
                        kind,
                        message.server_id,
                        ref,
                    )
    except ExceptionGroup as group:
        # a single failed lookup surfaces as itself
        if len(group.exceptions) == 1:
            raise group.exceptions[0] from None
        raise
    for kind, entities in results.items():
        invocation.remember(kind, entities)
