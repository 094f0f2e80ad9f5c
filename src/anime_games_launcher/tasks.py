"""Tasks abstraction for the launcher tasks queue.

A pending unit of work is a `QueuedTask` dataclass. Resolving it starts the
underlying long-running operation and returns a `ResolvedTask`, which the
queue driver polls for progress and status until it reaches
`TaskStatus.FINISHED` or fails.

Every task kind maps the status vocabulary of its own capability onto the
shared, ordered `TaskStatus` enum.
"""

from dataclasses import dataclass, field
from enum import IntEnum, auto
from logging import getLogger

from anime_games_launcher.utils import progress_ratio
from anime_games_launcher.variants import CardVariant

log = getLogger(__name__)


class TaskError(Exception):
    """Base class for errors that are fatal to a single task."""


class ResolutionError(TaskError):
    """A queued task could not be started."""


class StatusQueryError(TaskError):
    """A running task could not report its progress or status."""


class TaskStatus(IntEnum):
    "Installation phases in the order a task goes through them"

    PREPARING_TRANSITION = auto()
    DOWNLOADING = auto()
    UNPACKING = auto()
    FINISHING_TRANSITION = auto()
    APPLYING_HDIFF_PATCHES = auto()
    DELETING_OBSOLETE_FILES = auto()
    CREATING_PREFIX = auto()
    INSTALLING_FONTS = auto()
    FINISHED = auto()

    @property
    def label(self) -> str:
        return self.name.replace('_', ' ').capitalize()


@dataclass(frozen=True, kw_only=True)
class QueuedTask:
    """Abstract base class for pending tasks.

    ``title`` and ``author`` default to the variant display metadata.
    """

    variant: CardVariant
    title: str = ''
    author: str = ''

    def __post_init__(self) -> None:
        if not self.title:
            object.__setattr__(self, 'title', self.variant.display_title)
        if not self.author:
            object.__setattr__(self, 'author', self.variant.author)

    # abstract method
    def resolve(self) -> 'ResolvedTask':
        "Start the underlying operation"
        raise NotImplementedError


@dataclass(kw_only=True)
class ResolvedTask:
    """Abstract base class for running tasks.

    Subclasses implement the ``_poll_*`` methods against their capability
    and list the statuses they go through in ``STATUSES``. The public
    ``progress`` and ``status`` methods keep reported values monotonic.
    """

    STATUSES = tuple(TaskStatus)

    variant: CardVariant
    title: str
    author: str
    _current: int = field(default=0, init=False, repr=False)
    _total: int = field(default=0, init=False, repr=False)
    _last_status: TaskStatus | None = field(
        default=None, init=False, repr=False
    )
    _released: bool = field(default=False, init=False, repr=False)

    @classmethod
    def from_queued(cls, task: QueuedTask, **kwargs) -> 'ResolvedTask':
        return cls(
            variant=task.variant,
            title=task.title,
            author=task.author,
            **kwargs,
        )

    # abstract method
    def is_finished(self) -> bool:
        "Refresh the operation state and check whether it has finished"
        raise NotImplementedError

    # abstract method
    def _poll_progress(self) -> tuple[int, int]:
        "Current and total progress reported by the capability"
        raise NotImplementedError

    # abstract method
    def _poll_status(self) -> TaskStatus:
        "Status reported by the capability, mapped onto `TaskStatus`"
        raise NotImplementedError

    def progress(self) -> tuple[int, int, float]:
        """Return ``(current, total, ratio)``.

        Values never go below the ones returned by a previous call.
        """
        current, total = self._poll_progress()
        self._current = max(self._current, current)
        self._total = max(self._total, total)
        return (
            self._current,
            self._total,
            progress_ratio(self._current, self._total),
        )

    def status(self) -> TaskStatus:
        """Return the current status.

        Raises
        ------
        StatusQueryError
            If the capability cannot be introspected or reports a status
            this task kind does not go through.
        """
        status = self._poll_status()
        if status not in self.STATUSES:
            raise StatusQueryError(
                f'{type(self).__name__} does not support status {status.name}'
            )
        if self._last_status is not None and status < self._last_status:
            log.debug(
                'Ignoring out of order status %s for %s (last was %s)',
                status.name,
                self.variant,
                self._last_status.name,
            )
            return self._last_status
        self._last_status = status
        return status

    def release(self) -> None:
        """Release the underlying operation handle.

        Can be called more than once.
        """
        if not self._released:
            self._released = True
            self._on_release()

    def _on_release(self) -> None:
        pass
