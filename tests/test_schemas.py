import msgspec
import pytest

from chatcmd.model import Mentions
from chatcmd.schemas import ChatMessageCreated, decode_message_created


def test_decode_message_created() -> None:
    payload = b"""
    {
      "serverId": "srv",
      "message": {
        "id": "m1",
        "channelId": "c1",
        "content": "/hug @John",
        "createdBy": "u9",
        "type": "default",
        "mentions": {
          "users": [{"id": "u2"}, {"id": "u3"}],
          "roles": [{"id": 42}],
          "channels": [{"id": "c7"}]
        }
      }
    }
    """
    message = decode_message_created(payload)

    assert message.text == "/hug @John"
    assert message.channel_id == "c1"
    assert message.message_id == "m1"
    assert message.server_id == "srv"
    assert message.author_id == "u9"
    assert message.mentions == Mentions(
        members=("u2", "u3"), roles=("42",), channels=("c7",)
    )
    assert isinstance(message.raw, ChatMessageCreated)


def test_missing_mentions_and_server() -> None:
    message = decode_message_created(
        '{"message": {"id": "m1", "channelId": "c1", "serverId": "s2"}}'
    )
    assert message.text == ""
    assert message.server_id == "s2"
    assert message.mentions == Mentions()


def test_invalid_payload() -> None:
    with pytest.raises(msgspec.ValidationError):
        decode_message_created('{"message": {"id": "m1"}}')
