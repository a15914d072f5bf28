"""Queue-paced batch generation.

The controller owns :class:`GenerationState`. A recurring timer and the
manual trigger endpoints share one entry point (:meth:`BatchController.tick`)
and one serialization mechanism, the ``generating`` flag. State is only
touched while holding a short mutex; the mutex is never held across calls to
the database or the socket server.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

from crash_engine.core.settings import settings
from crash_engine.db.time import utcnow
from crash_engine.services.generation_config import GenerationConfig, load_generation_config
from crash_engine.services.notifier import (
    NotifierError,
    QueueHealth,
    get_socket_client,
)
from crash_engine.services.rng import RandomSource, build_random_source
from crash_engine.services.round_store import RoundStoreError, SqlRoundStore
from crash_engine.services.sequencer import (
    GenerationState,
    MultiplierPipeline,
    RoundSequencer,
)

# Configure logger for this module
logger = logging.getLogger(__name__)


class RoundStore(Protocol):
    """Persistence collaborator consumed by the controller."""

    def insert_batch(self, rows: list[dict[str, float | int]]) -> int: ...

    def max_round_number(self) -> int | None: ...

    def range_exists(self, start: int, end: int) -> bool: ...


class QueueNotifier(Protocol):
    """Downstream collaborator consumed by the controller."""

    async def fetch_health(self) -> QueueHealth: ...

    async def queue_batch(
        self, multipliers: list[dict[str, float | int]], start_round: int
    ) -> None: ...


class ControllerPhase(str, Enum):
    """Controller states."""

    IDLE = "idle"
    CHECKING_QUEUE_DEPTH = "checking_queue_depth"
    GENERATING_BATCH = "generating_batch"


class GenerationOutcome(str, Enum):
    """How a trigger or tick ended."""

    GENERATED = "generated"
    BUSY = "busy"
    QUEUE_SATURATED = "queue_saturated"
    CHECK_FAILED = "check_failed"
    STORE_UNAVAILABLE = "store_unavailable"
    RANGE_CONFLICT = "range_conflict"
    EMPTY_BUFFER = "empty_buffer"
    PERSIST_FAILED = "persist_failed"


@dataclass(frozen=True)
class GenerationResult:
    """Result of one controller cycle."""

    outcome: GenerationOutcome
    message: str
    start_round: int | None = None
    end_round: int | None = None
    notified: bool = False
    queue_size: int | None = None

    @property
    def success(self) -> bool:
        return self.outcome is GenerationOutcome.GENERATED


@dataclass(frozen=True)
class ControllerStatus:
    """Point-in-time copy of generation state for the status surface."""

    phase: ControllerPhase
    current_round: int
    next_round_to_generate: int
    generating: bool
    buffer_size: int
    history_size: int
    last_queue_check: datetime | None
    last_queue_size: int | None
    last_game_phase: str | None
    batch_size: int
    queue_threshold: int
    queue_check_interval_seconds: float
    running: bool

    def as_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "currentRound": self.current_round,
            "nextRoundToGenerate": self.next_round_to_generate,
            "isGenerating": self.generating,
            "bufferSize": self.buffer_size,
            "historySize": self.history_size,
            "lastQueueCheck": self.last_queue_check.isoformat() if self.last_queue_check else None,
            "lastQueueSize": self.last_queue_size,
            "lastGamePhase": self.last_game_phase,
            "batchSize": self.batch_size,
            "queueThreshold": self.queue_threshold,
            "queueCheckInterval": int(self.queue_check_interval_seconds * 1000),
            "running": self.running,
        }


class BatchController:
    """Paces round generation against the socket server's queue depth."""

    def __init__(
        self,
        store: RoundStore,
        notifier: QueueNotifier,
        config: GenerationConfig | None = None,
        rng: RandomSource | None = None,
        *,
        batch_size: int | None = None,
        queue_threshold: int | None = None,
        check_interval_seconds: float | None = None,
        default_start_round: int | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            store: Persistence collaborator.
            notifier: Socket server collaborator.
            config: Generation parameters. Defaults to values from settings.
            rng: Random source. Defaults to a source seeded from ``RNG_SEED``.
            batch_size: Rounds per persisted batch.
            queue_threshold: Generate only when queue depth is at or below this.
            check_interval_seconds: Timer period of the background loop.
            default_start_round: Last round assumed when nothing is persisted.
        """
        self.store = store
        self.notifier = notifier
        self.config = config or load_generation_config()
        self.batch_size = batch_size if batch_size is not None else settings.batch_size
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.queue_threshold = (
            queue_threshold if queue_threshold is not None else settings.queue_threshold
        )
        self.check_interval_seconds = (
            check_interval_seconds
            if check_interval_seconds is not None
            else settings.queue_check_interval_seconds
        )
        self.default_start_round = (
            default_start_round if default_start_round is not None else settings.default_start_round
        )

        self.state = GenerationState.starting_after(
            self.default_start_round, self.config.history_capacity
        )
        self.pipeline = MultiplierPipeline(self.config, rng or build_random_source(settings.rng_seed))
        self.sequencer = RoundSequencer(self.state, self.pipeline)

        self._lock = threading.Lock()
        self._checks_in_flight = 0
        self._initialized = False
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def initialize(self) -> None:
        """Reconcile the round counter with the highest persisted round."""

        persisted = await asyncio.to_thread(self.store.max_round_number)
        last_round = persisted if persisted is not None else self.default_start_round
        with self._lock:
            self.state.current_round = last_round
            self.state.next_round_to_generate = last_round + 1
            self._initialized = True
        logger.info(
            "Round sequencer starting at %d (last persisted: %s)",
            last_round + 1,
            persisted if persisted is not None else "none",
        )

    async def start(self) -> None:
        """Start the background queue-check loop."""

        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background loop, letting an in-flight batch finish."""

        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        interval = max(0.1, float(self.check_interval_seconds))

        while not self._initialized and not self._stopping.is_set():
            try:
                await self.initialize()
            except RoundStoreError as e:
                logger.warning("Could not reconcile round counter, retrying: %s", e)
                await self._sleep(interval)

        while not self._stopping.is_set():
            try:
                await self.tick()
            except Exception as e:
                logger.error("Batch controller tick failed: %s", e, exc_info=True)
            await self._sleep(interval)

    async def _sleep(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=seconds)
        except TimeoutError:
            pass

    async def tick(self) -> GenerationResult:
        """Check queue depth and generate a batch when the queue runs low.

        Used by the timer and by the manual trigger.
        """

        if self.is_generating:
            return GenerationResult(GenerationOutcome.BUSY, "Batch generation already in progress")

        with self._lock:
            self._checks_in_flight += 1
        try:
            health = await self.notifier.fetch_health()
        except NotifierError as e:
            logger.warning("Queue depth check failed: %s", e)
            return GenerationResult(GenerationOutcome.CHECK_FAILED, f"Queue check failed: {e}")
        finally:
            with self._lock:
                self._checks_in_flight -= 1

        with self._lock:
            self.state.last_queue_check = utcnow()
            self.state.last_queue_size = health.queue_size
            self.state.last_game_phase = health.game_phase

        if health.queue_size > self.queue_threshold:
            logger.debug(
                "Queue size %d above threshold %d, skipping generation",
                health.queue_size,
                self.queue_threshold,
            )
            return GenerationResult(
                GenerationOutcome.QUEUE_SATURATED,
                f"Queue size {health.queue_size} above threshold {self.queue_threshold}",
                queue_size=health.queue_size,
            )

        logger.info(
            "Queue size %d at or below threshold %d (phase %s), generating batch",
            health.queue_size,
            self.queue_threshold,
            health.game_phase,
        )
        return await self.generate_batch()

    async def force_generate(self) -> GenerationResult:
        """Generate a batch immediately, bypassing the queue depth check."""

        logger.info("Forced batch generation requested")
        return await self.generate_batch()

    async def generate_batch(self) -> GenerationResult:
        """Produce, persist and forward exactly one batch."""

        with self._lock:
            if self.state.generating:
                return GenerationResult(
                    GenerationOutcome.BUSY, "Batch generation already in progress"
                )
            self.state.generating = True

        try:
            if not self._initialized:
                try:
                    await self.initialize()
                except RoundStoreError as e:
                    logger.warning("Could not reconcile round counter: %s", e)
                    return GenerationResult(
                        GenerationOutcome.STORE_UNAVAILABLE, f"Round reconciliation failed: {e}"
                    )
            with self._lock:
                start = self.state.next_round_to_generate
            return await self._generate_batch(start)
        finally:
            with self._lock:
                self.state.generating = False

    async def _generate_batch(self, start: int) -> GenerationResult:
        end = start + self.batch_size - 1

        try:
            conflict = await asyncio.to_thread(self.store.range_exists, start, end)
        except RoundStoreError as e:
            logger.warning("Range check for rounds %d-%d failed: %s", start, end, e)
            return GenerationResult(
                GenerationOutcome.STORE_UNAVAILABLE, f"Range check failed: {e}"
            )
        if conflict:
            logger.error(
                "Rounds %d-%d already persisted; refusing to generate. "
                "Operator attention required.",
                start,
                end,
            )
            return GenerationResult(
                GenerationOutcome.RANGE_CONFLICT,
                f"Rounds {start}-{end} already exist",
                start_round=start,
                end_round=end,
            )

        with self._lock:
            checkpoint = self.sequencer.checkpoint()
            for _ in range(self.batch_size):
                self.sequencer.next_round()
            rows = [draft.as_payload() for draft in self.state.buffer]

        if not rows:
            logger.error("Refusing to finalize batch: buffer is empty")
            return GenerationResult(GenerationOutcome.EMPTY_BUFFER, "Buffer is empty")
        if len(rows) != self.batch_size or rows[0]["round_number"] != start:
            logger.error(
                "Buffer holds %d rounds starting at %s, expected %d starting at %d",
                len(rows),
                rows[0]["round_number"],
                self.batch_size,
                start,
            )
            with self._lock:
                self.sequencer.rollback(checkpoint)
            return GenerationResult(
                GenerationOutcome.PERSIST_FAILED, "Buffer does not match the expected batch"
            )

        try:
            await asyncio.to_thread(self.store.insert_batch, rows)
        except RoundStoreError as e:
            logger.warning("Persisting rounds %d-%d failed: %s", start, end, e)
            with self._lock:
                self.sequencer.rollback(checkpoint)
            return GenerationResult(
                GenerationOutcome.PERSIST_FAILED,
                f"Persisting rounds {start}-{end} failed: {e}",
                start_round=start,
                end_round=end,
            )

        logger.info(
            "Batch %d-%d: [%s]",
            start,
            end,
            ", ".join(f"{row['multiplier']:.2f}" for row in rows),
        )

        # The rows are committed; state advances whether or not notify succeeds.
        with self._lock:
            self.state.buffer.clear()
            self.state.current_round = end

        notified = True
        try:
            await self.notifier.queue_batch(rows, start)
        except NotifierError as e:
            notified = False
            logger.warning("Failed to queue rounds %d-%d on socket server: %s", start, end, e)
        except Exception:
            notified = False
            logger.exception("Unexpected error queueing rounds %d-%d on socket server", start, end)

        return GenerationResult(
            GenerationOutcome.GENERATED,
            f"Generated rounds {start}-{end}",
            start_round=start,
            end_round=end,
            notified=notified,
        )

    @property
    def is_generating(self) -> bool:
        with self._lock:
            return self.state.generating

    @property
    def phase(self) -> ControllerPhase:
        with self._lock:
            return self._phase_locked()

    def _phase_locked(self) -> ControllerPhase:
        if self.state.generating:
            return ControllerPhase.GENERATING_BATCH
        if self._checks_in_flight:
            return ControllerPhase.CHECKING_QUEUE_DEPTH
        return ControllerPhase.IDLE

    def status(self) -> ControllerStatus:
        """Return a consistent snapshot of generation state."""
        with self._lock:
            return ControllerStatus(
                phase=self._phase_locked(),
                current_round=self.state.current_round,
                next_round_to_generate=self.state.next_round_to_generate,
                generating=self.state.generating,
                buffer_size=len(self.state.buffer),
                history_size=len(self.state.history),
                last_queue_check=self.state.last_queue_check,
                last_queue_size=self.state.last_queue_size,
                last_game_phase=self.state.last_game_phase,
                batch_size=self.batch_size,
                queue_threshold=self.queue_threshold,
                queue_check_interval_seconds=self.check_interval_seconds,
                running=self.running,
            )


class _BatchControllerSingleton:
    """Singleton wrapper for BatchController."""

    _instance: BatchController | None = None

    @classmethod
    def get_instance(cls) -> BatchController:
        """Get or create the singleton controller instance."""
        if cls._instance is None:
            cls._instance = BatchController(SqlRoundStore(), get_socket_client())
        return cls._instance


def get_batch_controller() -> BatchController:
    """Return the process-wide batch controller."""
    return _BatchControllerSingleton.get_instance()
