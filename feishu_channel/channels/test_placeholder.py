import asyncio

import pytest

from feishu_channel.channels.fakes import FakeSender
from feishu_channel.channels.placeholder import PLACEHOLDER_TEXT, ThinkingPlaceholder


async def test_zero_threshold_never_arms() -> None:
    sender = FakeSender()
    placeholder = ThinkingPlaceholder(sender, "oc_chat", threshold_ms=0)

    placeholder.arm()
    await asyncio.sleep(0.02)

    assert await placeholder.settle() == ""
    assert sender.calls == []


async def test_cancel_before_threshold_sends_nothing() -> None:
    sender = FakeSender()
    placeholder = ThinkingPlaceholder(sender, "oc_chat", threshold_ms=50)

    placeholder.arm()
    placeholder.cancel()
    await asyncio.sleep(0.1)

    assert placeholder.done
    assert sender.calls == []


async def test_fires_after_threshold() -> None:
    sender = FakeSender()
    placeholder = ThinkingPlaceholder(sender, "oc_chat", threshold_ms=10)

    placeholder.arm()
    await asyncio.sleep(0.05)

    assert sender.calls == [("send_text", "oc_chat", PLACEHOLDER_TEXT, "om_1")]
    assert await placeholder.settle() == "om_1"


async def test_settle_waits_for_in_flight_send() -> None:
    sender = FakeSender(send_delay=0.05)
    placeholder = ThinkingPlaceholder(sender, "oc_chat", threshold_ms=5)

    placeholder.arm()
    await asyncio.sleep(0.02)  # timer fired, send still pending

    assert await placeholder.settle() == "om_1"


async def test_discard_recalls_once() -> None:
    sender = FakeSender()
    placeholder = ThinkingPlaceholder(sender, "oc_chat", threshold_ms=5)
    placeholder.arm()
    await asyncio.sleep(0.03)

    await placeholder.discard()
    await placeholder.discard()

    assert sender.names() == ["send_text", "delete"]


async def test_failed_update_falls_back_to_new_message() -> None:
    sender = FakeSender()
    sender.fail_update = True
    placeholder = ThinkingPlaceholder(sender, "oc_chat", threshold_ms=5)
    placeholder.arm()
    await asyncio.sleep(0.03)

    await placeholder.finish_with_text("answer")

    assert sender.calls[1:] == [
        ("delete", "om_1"),
        ("send_text", "oc_chat", "answer", "om_2"),
    ]


async def test_cancelling_the_waiter_leaves_in_flight_send_alone() -> None:
    sender = FakeSender(send_delay=0.1)
    placeholder = ThinkingPlaceholder(sender, "oc_chat", threshold_ms=5)
    placeholder.arm()
    await asyncio.sleep(0.02)

    waiter = asyncio.create_task(placeholder.settle())
    await asyncio.sleep(0.01)
    waiter.cancel()

    with pytest.raises(asyncio.CancelledError):
        await waiter
    assert await placeholder.settle() == "om_1"
