"""
Search worker for vanity address generation.

IMPORTANT: search_worker must stay a top-level importable function.
On macOS/Windows, multiprocessing uses 'spawn' which requires worker
targets to be importable by name from a module.
"""

import logging
from enum import Enum
from typing import Callable

from evm_vanity.channel import ChannelClosed, MatchResult, ProgressChannel, ProgressTick, WorkerFailed
from evm_vanity.core import ProviderError, generate_keypair
from evm_vanity.matcher import PatternSpec

logger = logging.getLogger(__name__)

BATCH_SIZE = 2000
MAX_TRANSIENT_RETRIES = 3


class WorkerState(Enum):
    RUNNING = "running"
    CANCELLING = "cancelling"
    STOPPED = "stopped"


class SearchWorker:
    """Generate keys in a tight loop and report through a ProgressChannel.

    Only the channel is shared with other workers; the attempt counter and
    candidate keys stay local. The stop event is checked before every
    iteration, so an iteration in flight completes but no new one starts.
    """

    def __init__(
        self,
        pattern: PatternSpec,
        channel: ProgressChannel,
        stop_event,
        batch_size: int = BATCH_SIZE,
        provider: Callable[[], tuple[bytes, str]] = generate_keypair,
        max_retries: int = MAX_TRANSIENT_RETRIES,
        name: str = "worker",
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.pattern = pattern
        self.channel = channel
        self.stop_event = stop_event
        self.batch_size = batch_size
        self.provider = provider
        self.max_retries = max_retries
        self.name = name
        self.state = WorkerState.RUNNING

    def run(self) -> WorkerState:
        try:
            self._loop()
        except ChannelClosed:
            logger.debug("%s: channel closed, stopping", self.name)
        self.state = WorkerState.STOPPED
        return self.state

    def _loop(self) -> None:
        local_count = 0
        failures = 0

        while self.state is WorkerState.RUNNING:
            if self.stop_event.is_set() or self.channel.closed:
                self.state = WorkerState.CANCELLING
                break

            try:
                private_key, address = self.provider()
            except ProviderError as e:
                if e.transient and failures < self.max_retries:
                    failures += 1
                    logger.warning("%s: transient provider error (%d/%d): %s",
                                   self.name, failures, self.max_retries, e)
                    continue
                self._fail(e)
                return
            except Exception as e:
                self._fail(e)
                return
            failures = 0
            local_count += 1

            if self.pattern.matches(address):
                logger.debug("%s: match %s after %d local attempts",
                             self.name, address, local_count)
                self.channel.send(MatchResult(address, private_key, local_count, self.name))
                return

            del private_key

            if local_count >= self.batch_size:
                self.channel.send(ProgressTick(local_count))
                local_count = 0

    def _fail(self, error: Exception) -> None:
        logger.error("%s: key provider failed: %s", self.name, error)
        self.channel.send(WorkerFailed(self.name, f"{type(error).__name__}: {error}"))


def search_worker(
    pattern: PatternSpec,
    channel: ProgressChannel,
    stop_event,
    batch_size: int = BATCH_SIZE,
    provider: Callable[[], tuple[bytes, str]] = generate_keypair,
    name: str = "worker",
) -> None:
    """Worker entry point: run until a match is found or stop_event is set.

    Args:
        pattern: PatternSpec shared read-only by all workers.
        channel: ProgressChannel for ticks, the match, or a failure report.
        stop_event: Event set by the coordinator to cancel all workers.
        batch_size: Attempts per ProgressTick.
        provider: Callable returning (private_key_bytes, address).
        name: Label used in logs and reports.
    """
    SearchWorker(pattern, channel, stop_event, batch_size, provider, name=name).run()
