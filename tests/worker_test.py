import threading

import pytest

from evm_vanity.channel import MatchResult, ProgressChannel, ProgressTick, WorkerFailed
from evm_vanity.core import ProviderError
from evm_vanity.matcher import build_pattern
from evm_vanity.worker import SearchWorker, WorkerState, search_worker

MISS = "0x" + "f" * 40


class CountingProvider:
    """Never matches; sets stop_event once it has served stop_after keys."""

    def __init__(self, stop_event, stop_after, address=MISS):
        self.stop_event = stop_event
        self.stop_after = stop_after
        self.address = address
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls >= self.stop_after:
            self.stop_event.set()
        return self.calls.to_bytes(32, "big"), self.address


class FailingProvider:
    def __init__(self, errors, address=MISS):
        self.errors = list(errors)
        self.address = address
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return b"\x01" * 32, self.address


def run_worker(provider, pattern=None, batch_size=1000, channel=None, stop_event=None):
    channel = channel or ProgressChannel.for_threads()
    stop_event = stop_event or threading.Event()
    worker = SearchWorker(pattern or build_pattern("00"), channel, stop_event,
                          batch_size=batch_size, provider=provider, name="w0")
    state = worker.run()
    return state, list(channel.drain())


@pytest.mark.parametrize("iterations,batch_size", [
    (4500, 1000),
    (999, 1000),
    (1000, 1000),
    (7, 2),
])
def test_ticks_only_for_full_batches(iterations, batch_size):
    stop_event = threading.Event()
    provider = CountingProvider(stop_event, iterations)
    state, messages = run_worker(provider, batch_size=batch_size, stop_event=stop_event)

    assert state is WorkerState.STOPPED
    assert provider.calls == iterations
    assert messages == [ProgressTick(batch_size)] * (iterations // batch_size)


def test_match_reports_attempts_since_last_tick():
    addresses = [MISS] * 12 + ["0xab" + "0" * 38]
    it = iter(addresses)

    def provider():
        return b"\x07" * 32, next(it)

    state, messages = run_worker(provider, pattern=build_pattern("ab"), batch_size=5)

    assert state is WorkerState.STOPPED
    assert messages[:2] == [ProgressTick(5), ProgressTick(5)]
    assert messages[2] == MatchResult("0xab" + "0" * 38, b"\x07" * 32, 3, "w0")
    assert len(messages) == 3


def test_match_is_reported_once_then_worker_stops():
    calls = []

    def provider():
        calls.append(1)
        return b"\x01" * 32, "0xab" + "0" * 38

    _, messages = run_worker(provider, pattern=build_pattern("ab"))
    assert len(calls) == 1
    assert [type(m) for m in messages] == [MatchResult]


def test_stop_before_start_runs_no_iterations():
    stop_event = threading.Event()
    stop_event.set()
    provider = CountingProvider(stop_event, 10)
    state, messages = run_worker(provider, stop_event=stop_event)
    assert state is WorkerState.STOPPED
    assert provider.calls == 0
    assert messages == []


def test_closed_channel_stops_worker_before_first_iteration():
    channel = ProgressChannel.for_threads()
    channel.close()
    provider = CountingProvider(threading.Event(), 10_000)
    state, messages = run_worker(provider, batch_size=1, channel=channel)
    assert state is WorkerState.STOPPED
    assert provider.calls == 0
    assert messages == []


def test_channel_closed_during_send_stops_worker():
    channel = ProgressChannel.for_threads()
    calls = []

    def provider():
        calls.append(1)
        channel.close()
        return b"\x01" * 32, MISS

    state, messages = run_worker(provider, batch_size=1, channel=channel)
    assert state is WorkerState.STOPPED
    assert len(calls) == 1
    assert messages == []


def test_transient_provider_errors_are_retried():
    provider = FailingProvider(
        [ProviderError("busy", transient=True), ProviderError("busy", transient=True)],
        address="0xab" + "0" * 38,
    )
    _, messages = run_worker(provider, pattern=build_pattern("ab"))
    assert provider.calls == 3
    assert isinstance(messages[0], MatchResult)
    assert messages[0].attempts == 1


def test_too_many_transient_errors_are_fatal():
    provider = FailingProvider([ProviderError("busy", transient=True)] * 10)
    _, messages = run_worker(provider)
    assert provider.calls == 4
    assert len(messages) == 1
    assert isinstance(messages[0], WorkerFailed)


def test_permanent_provider_error_is_reported():
    provider = FailingProvider([ProviderError("entropy exhausted")])
    state, messages = run_worker(provider)
    assert state is WorkerState.STOPPED
    assert messages == [WorkerFailed("w0", "ProviderError: entropy exhausted")]


def test_unexpected_provider_exception_is_reported():
    provider = FailingProvider([RuntimeError("boom")])
    _, messages = run_worker(provider)
    assert isinstance(messages[0], WorkerFailed)
    assert "boom" in messages[0].error


def test_search_worker_entry_point():
    channel = ProgressChannel.for_threads()

    def provider():
        return b"\x02" * 32, "0x" + "1" * 38 + "ee"

    search_worker(build_pattern("", "EE"), channel, threading.Event(), 10, provider, "entry")
    (msg,) = list(channel.drain())
    assert msg.worker == "entry"
    assert msg.attempts == 1


def test_rejects_zero_batch_size():
    with pytest.raises(ValueError):
        SearchWorker(build_pattern("ab"), ProgressChannel.for_threads(), threading.Event(), batch_size=0)
