"""
One-way message channel from search workers to the coordinator.

Workers only ever send; the coordinator is the single consumer. The same
class wraps a multiprocessing queue for process workers and a plain
queue.Queue for thread workers.
"""

import multiprocessing
import queue
import threading
from dataclasses import dataclass


@dataclass(frozen=True)
class ProgressTick:
    """count attempts finished since the worker's previous tick."""
    count: int


@dataclass(frozen=True)
class MatchResult:
    """A matching keypair, sent once by the worker that found it."""
    address: str
    private_key: bytes
    attempts: int
    worker: str = ""


@dataclass(frozen=True)
class WorkerFailed:
    """A worker hit a fatal provider error and stopped."""
    worker: str
    error: str


class ChannelClosed(Exception):
    """The coordinator has stopped listening."""


class ProgressChannel:
    """Multi-producer, single-consumer channel with a close flag.

    Must be handed to worker processes at spawn time (as a Process
    argument), like the multiprocessing primitives it wraps.
    """

    def __init__(self, messages, closed):
        self._messages = messages
        self._closed = closed

    @classmethod
    def for_processes(cls, ctx=None) -> "ProgressChannel":
        ctx = ctx or multiprocessing.get_context()
        return cls(ctx.Queue(), ctx.Event())

    @classmethod
    def for_threads(cls) -> "ProgressChannel":
        return cls(queue.Queue(), threading.Event())

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def send(self, message) -> None:
        """Enqueue a message. Raises ChannelClosed once the consumer is gone."""
        if self._closed.is_set():
            raise ChannelClosed()
        try:
            self._messages.put(message)
        except (ValueError, OSError) as e:
            # multiprocessing.Queue raises these after close()
            raise ChannelClosed() from e

    def receive(self, timeout: float = None):
        """Block for the next message. Raises queue.Empty on timeout."""
        return self._messages.get(timeout=timeout)

    def drain(self):
        """Yield every message currently waiting, without blocking."""
        while True:
            try:
                yield self._messages.get_nowait()
            except queue.Empty:
                return

    def close(self) -> None:
        self._closed.set()
