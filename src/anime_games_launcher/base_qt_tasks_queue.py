"""Tasks queue and its background driver.

The main object is `TasksQueueDriver`, a `QObject` that owns a `TaskQueue`
of pending `QueuedTask` objects and runs them one at a time inside a
superqt `GeneratorWorker`.

Enqueue requests flow into the worker through a `SimpleQueue`; lifecycle
events flow back through the worker ``yielded`` signal and are re-emitted
on the main thread as `progressTick`, `jobCompleted`, `jobFailed`, ...
"""

import configparser
from collections import deque
from collections.abc import Generator, Iterator
from enum import StrEnum, auto
from logging import getLogger
from queue import Empty, SimpleQueue
from time import monotonic
from typing import TypedDict

from qtpy.QtCore import QObject, Signal, Slot
from superqt.utils import GeneratorWorker, create_worker

from anime_games_launcher import config as launcher_config
from anime_games_launcher.tasks import (
    QueuedTask,
    ResolutionError,
    ResolvedTask,
    StatusQueryError,
    TaskStatus,
)
from anime_games_launcher.variants import CardVariant

log = getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.5

# Sentinel put in the requests channel to stop the worker
_SHUTDOWN = object()


class DriverState(StrEnum):
    "States of the tasks queue driver"

    IDLE = auto()
    STARTING = auto()
    RUNNING = auto()
    COMPLETING = auto()
    FAILED = auto()


class DriverEvents(StrEnum):
    "Events yielded by the driver worker"

    JOB_TAKEN = auto()
    JOB_STARTED = auto()
    PROGRESS_TICK = auto()
    JOB_COMPLETED = auto()
    JOB_FAILED = auto()
    ALL_FINISHED = auto()


class JobStartedData(TypedDict):
    """Data about a task that just started."""

    variant: CardVariant
    title: str
    author: str


class ProgressTickData(TypedDict):
    """Progress of the running task."""

    variant: CardVariant
    current: int
    total: int
    ratio: float
    status: TaskStatus


class JobCompletedData(TypedDict):
    """Data about a task that reached `TaskStatus.FINISHED`."""

    variant: CardVariant


class JobFailedData(TypedDict):
    """Data about a task that could not be resolved or polled."""

    variant: CardVariant
    title: str
    author: str
    error_message: str


class TaskQueue:
    """FIFO holding area for pending tasks.

    No de-duplication is performed, callers must not enqueue the same
    logical unit of work twice.
    """

    def __init__(self) -> None:
        self._pending: deque[QueuedTask] = deque()

    def enqueue(self, task: QueuedTask) -> None:
        self._pending.append(task)

    def peek_next(self) -> QueuedTask | None:
        return self._pending[0] if self._pending else None

    def take_next(self) -> QueuedTask | None:
        return self._pending.popleft() if self._pending else None

    def is_empty(self) -> bool:
        return not self._pending

    def __len__(self) -> int:
        return len(self._pending)

    def __iter__(self) -> Iterator[QueuedTask]:
        return iter(tuple(self._pending))


class TasksQueueDriver(QObject):
    """Run queued tasks one at a time on a background worker.

    The worker blocks while the queue is empty, call `shutdown` before the
    application quits.
    """

    # emitted when a task has been resolved and is about to be polled
    # dict: JobStartedData
    jobStarted = Signal(dict)

    # emitted on every poll of the running task, even if nothing changed
    # dict: ProgressTickData
    progressTick = Signal(dict)

    # dict: JobCompletedData
    jobCompleted = Signal(dict)

    # dict: JobFailedData
    jobFailed = Signal(dict)

    # emitted when the queue runs dry. Not to be confused with jobCompleted,
    # which is emitted when each individual task is finished.
    # Tuple of variants completed since the last time the queue was empty
    allFinished = Signal(tuple)

    # emitted when the worker dies from an unexpected exception
    errored = Signal(object)

    def __init__(
        self,
        parent: QObject | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        autostart: bool = True,
    ) -> None:
        super().__init__(parent)
        if poll_interval <= 0:
            raise ValueError(
                f'poll_interval must be positive, got {poll_interval}'
            )
        self._poll_interval = poll_interval
        self._autostart = autostart
        # owned by the worker thread once it is running
        self._queue = TaskQueue()
        self._active: ResolvedTask | None = None
        self._state = DriverState.IDLE
        self._requests: SimpleQueue = SimpleQueue()
        self._worker: GeneratorWorker | None = None
        # main thread bookkeeping
        self._jobs = 0
        # a task left the queue and has no terminal event yet
        self._in_flight = False
        self._stopping = False
        self._restart = False

    @classmethod
    def from_configuration(
        cls,
        config: configparser.ConfigParser,
        parent: QObject | None = None,
    ) -> 'TasksQueueDriver':
        """Create a driver polling at the configured interval."""
        return cls(parent, poll_interval=launcher_config.poll_interval(config))

    # -------------------------- Public API ------------------------------
    def enqueue(self, task: QueuedTask) -> None:
        """Submit a task to the end of the queue.

        Parameters
        ----------
        task : QueuedTask
            Task to run once all previously enqueued tasks are done.
        """
        log.debug('Enqueueing %r', task)
        self._jobs += 1
        self._requests.put(task)
        if self._autostart:
            self.start()

    def start(self) -> None:
        """Start the background worker if it is not running.

        Starting while a shutdown is in progress restarts the worker once
        the current one has stopped.
        """
        if self._worker is not None:
            if self._stopping:
                self._restart = True
            return
        self._discard_shutdown_requests()
        self._worker = create_worker(
            self._drive,
            _start_thread=False,
            _ignore_errors=True,
            _connect={
                'yielded': self._on_yielded,
                'errored': self._on_errored,
                'finished': self._on_worker_finished,
            },
        )
        self._worker.start()

    def shutdown(self) -> None:
        """Stop the worker at its next suspension point.

        Pending tasks stay in the queue, the running task is released
        without a completion event and no longer counts as a job.
        Repeated calls while the worker is stopping do nothing.
        """
        if self._worker is not None and not self._stopping:
            self._stopping = True
            self._restart = False
            self._requests.put(_SHUTDOWN)

    def is_running(self) -> bool:
        """True if the background worker is alive."""
        return self._worker is not None

    def hasJobs(self) -> bool:
        """True if there are tasks queued or running."""
        return self._jobs > 0

    def currentJobs(self) -> int:
        """Return the number of tasks queued or running."""
        return self._jobs

    def state(self) -> DriverState:
        return self._state

    # -------------------------- Worker side ------------------------------
    def _drive(self) -> Generator[tuple[DriverEvents, object], None, None]:
        completed: list[CardVariant] = []
        processed = False
        while True:
            if not self._drain_requests():
                return
            if self._queue.is_empty():
                if processed:
                    yield DriverEvents.ALL_FINISHED, tuple(completed)
                    completed = []
                    processed = False
                request = self._requests.get()
                if request is _SHUTDOWN:
                    return
                self._queue.enqueue(request)
                continue

            task = self._queue.take_next()
            processed = True
            yield DriverEvents.JOB_TAKEN, task.variant
            self._state = DriverState.STARTING
            try:
                self._active = task.resolve()
            except ResolutionError as e:
                self._state = DriverState.FAILED
                log.warning('Failed to start %s: %s', task.title, e)
                yield DriverEvents.JOB_FAILED, self._failed_data(task, e)
                self._state = DriverState.IDLE
                continue

            log.info('Started %s', task.title)
            yield (
                DriverEvents.JOB_STARTED,
                JobStartedData(
                    variant=task.variant, title=task.title, author=task.author
                ),
            )
            try:
                outcome = yield from self._run_active(self._active)
            finally:
                self._active.release()
                self._active = None
            self._state = DriverState.IDLE
            if outcome is None:
                return
            if outcome:
                completed.append(task.variant)

    def _run_active(
        self, active: ResolvedTask
    ) -> Generator[tuple[DriverEvents, object], None, bool | None]:
        """Poll the active task until it is done.

        Returns True when it finished, False when it failed and None when
        the driver was shut down in the meantime.
        """
        self._state = DriverState.RUNNING
        while True:
            try:
                active.is_finished()
                status = active.status()
                current, total, ratio = active.progress()
            except StatusQueryError as e:
                self._state = DriverState.FAILED
                log.warning('Task %s failed: %s', active.title, e)
                yield DriverEvents.JOB_FAILED, self._failed_data(active, e)
                return False

            log.debug(
                '%s: %s %s/%s', active.title, status.label, current, total
            )
            yield (
                DriverEvents.PROGRESS_TICK,
                ProgressTickData(
                    variant=active.variant,
                    current=current,
                    total=total,
                    ratio=ratio,
                    status=status,
                ),
            )
            if status is TaskStatus.FINISHED:
                self._state = DriverState.COMPLETING
                log.info('Finished %s', active.title)
                yield (
                    DriverEvents.JOB_COMPLETED,
                    JobCompletedData(variant=active.variant),
                )
                return True

            if not self._wait():
                return None

    def _drain_requests(self) -> bool:
        """Move requests that are already waiting into the queue.

        Returns False if a shutdown was requested.
        """
        while True:
            try:
                request = self._requests.get_nowait()
            except Empty:
                return True
            if request is _SHUTDOWN:
                return False
            self._queue.enqueue(request)

    def _wait(self) -> bool:
        """Sleep for a poll interval while accepting new requests.

        Returns False if a shutdown was requested.
        """
        deadline = monotonic() + self._poll_interval
        while (remaining := deadline - monotonic()) > 0:
            try:
                request = self._requests.get(timeout=remaining)
            except Empty:
                break
            if request is _SHUTDOWN:
                return False
            self._queue.enqueue(request)
        return True

    def _discard_shutdown_requests(self) -> None:
        """Drop shutdown requests no worker consumed, keeping the tasks."""
        pending = []
        while True:
            try:
                request = self._requests.get_nowait()
            except Empty:
                break
            if request is not _SHUTDOWN:
                pending.append(request)
        for request in pending:
            self._requests.put(request)

    @staticmethod
    def _failed_data(
        task: QueuedTask | ResolvedTask, error: Exception
    ) -> JobFailedData:
        return JobFailedData(
            variant=task.variant,
            title=task.title,
            author=task.author,
            error_message=str(error),
        )

    # -------------------------- Main thread ------------------------------
    @Slot(object)
    def _on_yielded(self, event: tuple[DriverEvents, object]) -> None:
        kind, data = event
        if kind == DriverEvents.PROGRESS_TICK:
            self.progressTick.emit(data)
        elif kind == DriverEvents.JOB_TAKEN:
            self._in_flight = True
        elif kind == DriverEvents.JOB_STARTED:
            self.jobStarted.emit(data)
        elif kind == DriverEvents.JOB_COMPLETED:
            self._settle()
            self.jobCompleted.emit(data)
        elif kind == DriverEvents.JOB_FAILED:
            self._settle()
            self.jobFailed.emit(data)
        elif kind == DriverEvents.ALL_FINISHED:
            self.allFinished.emit(data)
        else:
            raise ValueError(f'Driver event {kind} not recognized!')

    @Slot(object)
    def _on_errored(self, error: Exception) -> None:
        log.error('Tasks queue driver stopped: %r', error)
        self._state = DriverState.IDLE
        self.errored.emit(error)

    @Slot()
    def _on_worker_finished(self) -> None:
        self._worker = None
        self._stopping = False
        if self._in_flight:
            # dropped by a shutdown or lost when the worker died
            log.info('Dropped the running task of the tasks queue')
            self._settle()
        restart, self._restart = self._restart, False
        # enqueued while the worker was shutting down
        if restart or (self._autostart and not self._requests.empty()):
            self.start()

    def _settle(self) -> None:
        self._in_flight = False
        self._jobs -= 1
