import queue

import pytest

from evm_vanity.channel import ChannelClosed, MatchResult, ProgressChannel, ProgressTick


def test_send_and_receive_in_order():
    channel = ProgressChannel.for_threads()
    channel.send(ProgressTick(10))
    channel.send(MatchResult("0xab", b"\x01" * 32, 3))
    assert channel.receive(timeout=1) == ProgressTick(10)
    assert channel.receive(timeout=1).attempts == 3


def test_receive_times_out():
    channel = ProgressChannel.for_threads()
    with pytest.raises(queue.Empty):
        channel.receive(timeout=0.01)


def test_send_after_close_raises():
    channel = ProgressChannel.for_threads()
    channel.close()
    assert channel.closed
    with pytest.raises(ChannelClosed):
        channel.send(ProgressTick(1))


def test_drain_empties_channel():
    channel = ProgressChannel.for_threads()
    for i in range(5):
        channel.send(ProgressTick(i))
    assert [m.count for m in channel.drain()] == [0, 1, 2, 3, 4]
    assert list(channel.drain()) == []


def test_process_channel_roundtrip():
    channel = ProgressChannel.for_processes()
    channel.send(ProgressTick(7))
    assert channel.receive(timeout=5) == ProgressTick(7)
