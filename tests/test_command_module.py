import anyio
import pytest

from chatcmd.commands.events import CommandEvent, Invoked, NoCommandFound
from chatcmd.commands.module import CommandModule
from chatcmd.commands.tree import CommandGroup
from tests.factories import FakeLookup, FakeSource, FakeTransport, make_message


def build_commands() -> CommandGroup:
    commands = CommandGroup()

    @commands.command()
    async def ping(event: CommandEvent) -> None:
        await event.reply("pong")

    return commands


@pytest.mark.anyio
async def test_failures_are_published_to_subscribers() -> None:
    module = CommandModule(build_commands(), transport=FakeTransport())
    first = module.subscribe_failures()
    second = module.subscribe_failures()

    invoked = await module.handle_message(make_message("/ping"))
    failed = await module.handle_message(make_message("/pong"))

    assert isinstance(invoked, Invoked)
    assert isinstance(failed, NoCommandFound)
    with anyio.fail_after(1):
        assert await first.receive() is failed
        assert await second.receive() is failed
    with pytest.raises(anyio.WouldBlock):
        first.receive_nowait()


@pytest.mark.anyio
async def test_full_or_closed_subscribers_do_not_break_dispatch() -> None:
    module = CommandModule(build_commands(), failure_buffer=0)
    stream = module.subscribe_failures()
    await module.handle_message(make_message("/nope"))

    stream.close()
    outcome = await module.handle_message(make_message("/nope"))
    assert isinstance(outcome, NoCommandFound)


@pytest.mark.anyio
async def test_module_passes_collaborators_to_handlers() -> None:
    transport = FakeTransport()
    module = CommandModule(
        build_commands().build(), lookup=FakeLookup(), transport=transport
    )
    await module.handle_message(make_message("/ping"))
    assert [call["message"].text for call in transport.send_calls] == ["pong"]


@pytest.mark.anyio
async def test_add_to_and_remove() -> None:
    transport = FakeTransport()
    module = CommandModule(build_commands(), transport=transport)
    source = FakeSource()

    module.add_to(source)
    with pytest.raises(RuntimeError, match="already attached"):
        module.add_to(source)

    await source.handler(make_message("/ping"))
    assert len(transport.send_calls) == 1

    other = FakeSource()
    module.add_to(other)
    assert source.handler is None
    assert other.handler is not None

    module.remove()
    assert other.handler is None
    module.remove()
