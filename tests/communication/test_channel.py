# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import pytest

from unittest.mock import AsyncMock
from pydantic import ValidationError

from coding_runtime.communication import SubAgentCommunication
from coding_runtime.config import settings
from coding_runtime.errors import ChannelClosedError, CommunicationError
from coding_runtime.types.subagent_types import MessageType, SubAgentMessage


def message(kind: MessageType = MessageType.STATUS, payload=None) -> SubAgentMessage:
    return SubAgentMessage(type=kind, payload=payload)


class TestSubAgentCommunication:

    async def test_send_to_parent_enriches_and_routes(self):
        router = AsyncMock()
        channel = SubAgentCommunication("child", "parent", router=router)

        await channel.send_to_parent(message(MessageType.RESULT, {"ok": True}))

        sent = router.await_args.args[0]
        assert sent.from_ == "child"
        assert sent.to == "parent"
        assert sent.payload == {"ok": True}
        assert channel.get_message_history() == [sent]

    async def test_send_to_parent_without_parent(self):
        channel = SubAgentCommunication("orphan", router=AsyncMock())
        with pytest.raises(CommunicationError):
            await channel.send_to_parent(message())

    async def test_send_on_closed_channel(self):
        channel = SubAgentCommunication("child", "parent", router=AsyncMock())
        await channel.close()
        await channel.close()
        assert channel.is_active() is False
        with pytest.raises(ChannelClosedError):
            await channel.send_to_parent(message())
        with pytest.raises(ChannelClosedError):
            await channel.send_to_sub_agent("other", message())

    async def test_receive_from_parent(self):
        channel = SubAgentCommunication("child", "parent")
        incoming = message(MessageType.TASK_DELEGATION, "do it")

        await channel.deliver_from_parent(incoming)

        assert await channel.receive_from_parent(timeout=0.1) == incoming

    async def test_receive_times_out_with_none(self):
        channel = SubAgentCommunication("child", "parent")
        assert await channel.receive_from_parent(timeout=0.01) is None

    async def test_receive_uses_configured_default_timeout(self, monkeypatch):
        monkeypatch.setattr(settings, "RECEIVE_TIMEOUT_SECONDS", 0.01)
        channel = SubAgentCommunication("child", "parent")
        assert await channel.receive_from_parent() is None

    async def test_receive_on_closed_channel(self):
        channel = SubAgentCommunication("child", "parent")
        await channel.close()
        assert await channel.receive_from_parent(timeout=0.01) is None

    async def test_sub_agent_callbacks(self):
        channel = SubAgentCommunication("parent")
        received = []
        async_callback = AsyncMock()

        def failing(msg):
            raise RuntimeError("callback bug")

        channel.subscribe_to_sub_agent("child", failing)
        channel.subscribe_to_sub_agent("child", received.append)
        channel.subscribe_to_sub_agent("child", async_callback)
        update = message(MessageType.PROGRESS_UPDATE, "halfway")

        await channel.deliver_from_sub_agent("child", update)
        await channel.deliver_from_sub_agent("someone-else", message())

        assert received == [update]
        async_callback.assert_awaited_once_with(update)

        channel.unsubscribe_from_sub_agent("child")
        await channel.deliver_from_sub_agent("child", update)
        assert received == [update]

    async def test_history_is_bounded(self):
        channel = SubAgentCommunication("child", "parent", router=AsyncMock())
        for i in range(settings.MESSAGE_HISTORY_LIMIT + 1):
            await channel.send_to_parent(message(payload=i))

        history = channel.get_message_history()
        assert len(history) == settings.MESSAGE_HISTORY_LIMIT
        assert history[0].payload == 1
        assert history[-1].payload == settings.MESSAGE_HISTORY_LIMIT

    async def test_stats_and_clear(self):
        channel = SubAgentCommunication("parent", router=AsyncMock())
        channel.subscribe_to_sub_agent("child", lambda m: None)
        await channel.send_to_sub_agent("child", message(MessageType.TASK_DELEGATION))
        await channel.send_to_sub_agent("child", message(MessageType.STATUS))
        await channel.send_to_sub_agent("child", message(MessageType.STATUS))

        assert channel.get_stats() == {
            "total_messages": 3,
            "messages_by_type": {"task_delegation": 1, "status": 2},
            "child_agents": 1,
            "is_active": True,
        }

        channel.clear_history()
        assert channel.get_message_history() == []


class TestSubAgentMessage:

    def test_is_frozen(self):
        msg = message(MessageType.RESULT, {"ok": True})
        with pytest.raises(ValidationError):
            msg.to = "someone-else"

    def test_sender_by_alias_or_field_name(self):
        by_alias = SubAgentMessage.model_validate({"type": "status", "from": "child"})
        by_name = SubAgentMessage(type=MessageType.STATUS, from_="child")

        assert by_alias.from_ == by_name.from_ == "child"
        assert by_alias.model_dump(by_alias=True)["from"] == "child"

    def test_enrich_with_copy(self):
        original = message()
        enriched = original.model_copy(update={"from_": "child", "to": "parent"})

        assert (enriched.from_, enriched.to) == ("child", "parent")
        assert original.from_ == ""
        assert enriched.id == original.id
