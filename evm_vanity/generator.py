"""
Search coordinator: manages workers, aggregates progress, picks the winner.
"""

import logging
import multiprocessing
import os
import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from evm_vanity.channel import MatchResult, ProgressChannel, ProgressTick, WorkerFailed
from evm_vanity.core import generate_keypair
from evm_vanity.matcher import PatternSpec
from evm_vanity.stats import KEYS_PER_SEC_PER_WORKER, compute_speed, estimate_difficulty, snapshot
from evm_vanity.worker import BATCH_SIZE, search_worker

logger = logging.getLogger(__name__)

RENDER_INTERVAL = 0.1   # seconds between on_progress calls
POLL_INTERVAL = 0.25    # seconds to block on the channel before checking limits
JOIN_TIMEOUT = 2.0      # seconds to wait for workers before terminating them


class SearchError(Exception):
    """The search ended without a usable match."""


class SearchExhausted(SearchError):
    """The configured timeout or attempt ceiling was reached."""

    def __init__(self, message: str, total_attempts: int, elapsed: float):
        super().__init__(message)
        self.total_attempts = total_attempts
        self.elapsed = elapsed


class SearchReporter:
    """Receives coordinator events. The base class ignores them."""

    def on_progress(self, speed: float, scanned: int, probability: float) -> None:
        pass

    def on_found(self, address: str, private_key: bytes, elapsed: float, total_scanned: int) -> None:
        pass


@dataclass
class SearchState:
    """Counters owned by the consuming loop of a single run()."""
    start_time: float
    total_attempts: int = 0
    winner: Optional[MatchResult] = None
    last_render: float = float("-inf")


@dataclass
class SearchResult:
    """The accepted vanity address match."""
    match: MatchResult
    total_attempts: int
    elapsed: float

    @property
    def address(self) -> str:
        return self.match.address

    @property
    def private_key(self) -> bytes:
        return self.match.private_key

    @property
    def rate(self) -> float:
        return compute_speed(self.total_attempts, self.elapsed)


class VanityGenerator:
    """Orchestrates parallel vanity address search.

    Usage:
        gen = VanityGenerator(build_pattern(prefix="cafe"), num_workers=4)
        result = gen.run()
        print(result.address, result.private_key.hex())

    Workers are processes by default. use_threads=True runs them as threads
    in this process, which lets the provider be any callable (it does not
    have to be picklable).
    """

    def __init__(
        self,
        pattern: PatternSpec,
        num_workers: int = 0,
        reporter: Optional[SearchReporter] = None,
        provider: Callable[[], tuple[bytes, str]] = generate_keypair,
        batch_size: int = BATCH_SIZE,
        render_interval: float = RENDER_INTERVAL,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        use_threads: bool = False,
        join_timeout: float = JOIN_TIMEOUT,
    ):
        self.pattern = pattern
        self.num_workers = num_workers if num_workers > 0 else (os.cpu_count() or 1)
        self.reporter = reporter or SearchReporter()
        self.provider = provider
        self.batch_size = batch_size
        self.render_interval = render_interval
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.use_threads = use_threads
        self.join_timeout = join_timeout

    def get_difficulty(self) -> dict:
        """Get difficulty estimate for the current pattern and worker count."""
        return estimate_difficulty(self.pattern, KEYS_PER_SEC_PER_WORKER * self.num_workers)

    def run(self) -> SearchResult:
        """Search until a match is found, blocking the caller.

        Raises SearchExhausted when a timeout or max_attempts is configured
        and reached, SearchError if a worker fails or all workers exit.
        """
        if self.use_threads:
            channel = ProgressChannel.for_threads()
            stop_event = threading.Event()
        else:
            channel = ProgressChannel.for_processes()
            stop_event = multiprocessing.Event()

        state = SearchState(start_time=time.monotonic())
        workers = []
        try:
            self._spawn(channel, stop_event, workers)
            logger.info("Started %d %s for %s (1 in %d)", len(workers),
                        "threads" if self.use_threads else "processes",
                        self.pattern.target, self.pattern.difficulty)
            winner = self._consume(channel, workers, state)
        finally:
            self._shutdown(channel, stop_event, workers)

        elapsed = time.monotonic() - state.start_time
        result = SearchResult(match=winner, total_attempts=state.total_attempts, elapsed=elapsed)
        logger.info("Found %s by %s after %d attempts in %.2fs",
                    winner.address, winner.worker, result.total_attempts, elapsed)
        self.reporter.on_found(winner.address, winner.private_key, elapsed, result.total_attempts)
        return result

    def _spawn(self, channel: ProgressChannel, stop_event, workers: list) -> None:
        """Start workers, appending each one to workers as soon as it runs."""
        for i in range(self.num_workers):
            name = f"evm-vanity-worker-{i}"
            args = (self.pattern, channel, stop_event, self.batch_size, self.provider, name)
            if self.use_threads:
                w = threading.Thread(target=search_worker, args=args, daemon=True, name=name)
            else:
                w = multiprocessing.Process(target=search_worker, args=args, daemon=True, name=name)
            w.start()
            workers.append(w)

    def _consume(self, channel: ProgressChannel, workers: list, state: SearchState) -> MatchResult:
        """Drain the channel until the first match; return it."""
        while state.winner is None:
            try:
                msg = channel.receive(timeout=POLL_INTERVAL)
            except queue.Empty:
                if not any(w.is_alive() for w in workers):
                    # A worker may have sent its result just before exiting.
                    for msg in channel.drain():
                        self._dispatch(msg, state, check_limits=False)
                        if state.winner is not None:
                            return state.winner
                    raise SearchError("All workers exited without finding a match.")
                self._check_limits(state)
                continue

            self._dispatch(msg, state)

        return state.winner

    def _dispatch(self, msg, state: SearchState, check_limits: bool = True) -> None:
        if isinstance(msg, ProgressTick):
            state.total_attempts += msg.count
            self._maybe_render(state)
            if check_limits:
                self._check_limits(state)
        elif isinstance(msg, MatchResult):
            state.total_attempts += msg.attempts
            state.winner = msg
        elif isinstance(msg, WorkerFailed):
            raise SearchError(f"{msg.worker} failed: {msg.error}")
        else:
            logger.warning("Ignoring unexpected message %r", msg)

    def _maybe_render(self, state: SearchState) -> None:
        now = time.monotonic()
        if now - state.last_render < self.render_interval:
            return
        state.last_render = now
        snap = snapshot(state.total_attempts, now - state.start_time, self.pattern.difficulty)
        self.reporter.on_progress(snap.rate, snap.total_checked, snap.probability)

    def _check_limits(self, state: SearchState) -> None:
        elapsed = time.monotonic() - state.start_time
        if self.max_attempts is not None and state.total_attempts >= self.max_attempts:
            raise SearchExhausted(
                f"No match after {state.total_attempts} attempts (limit {self.max_attempts}).",
                state.total_attempts, elapsed,
            )
        if self.timeout is not None and elapsed >= self.timeout:
            raise SearchExhausted(
                f"No match after {elapsed:.1f}s (timeout {self.timeout}s).",
                state.total_attempts, elapsed,
            )

    def _shutdown(self, channel: ProgressChannel, stop_event, workers: list) -> None:
        """Stop all workers, discarding anything still in the channel."""
        stop_event.set()
        channel.close()

        deadline = time.monotonic() + self.join_timeout
        for w in workers:
            # A process cannot exit while its queued messages are unread.
            while w.is_alive() and time.monotonic() < deadline:
                self._discard_pending(channel)
                w.join(timeout=0.05)
            if w.is_alive():
                if isinstance(w, multiprocessing.Process):
                    logger.warning("Terminating unresponsive worker %s", w.name)
                    w.terminate()
                    w.join()
                else:
                    logger.warning("Worker thread %s still running after stop", w.name)
        self._discard_pending(channel)

    @staticmethod
    def _discard_pending(channel: ProgressChannel) -> None:
        for msg in channel.drain():
            if isinstance(msg, MatchResult):
                logger.debug("Discarding late match %s from %s", msg.address, msg.worker)


def run_search(pattern: PatternSpec, worker_count: int, **options) -> SearchResult:
    """Run a blocking search with worker_count workers. See VanityGenerator."""
    return VanityGenerator(pattern, num_workers=worker_count, **options).run()
