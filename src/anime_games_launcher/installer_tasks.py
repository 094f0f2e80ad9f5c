"""Installable task kinds for the launcher tasks queue.

Game diffs and component downloads delegate to opaque "updater"
capabilities. Wine prefix creation runs ``wineboot`` (and optionally
``winetricks corefonts``) as subprocesses.
"""

import os
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass, field
from logging import getLogger
from pathlib import Path
from typing import Protocol

from anime_games_launcher.tasks import (
    QueuedTask,
    ResolutionError,
    ResolvedTask,
    StatusQueryError,
    TaskStatus,
)
from anime_games_launcher.variants import CardVariant

log = getLogger(__name__)

NO_APPLICABLE_UPDATE = 'no applicable update'

# Updater status names -> shared task statuses
UPDATER_STATUSES: dict[str, TaskStatus] = {
    'PreparingTransition': TaskStatus.PREPARING_TRANSITION,
    'Downloading': TaskStatus.DOWNLOADING,
    'Unpacking': TaskStatus.UNPACKING,
    'FinishingTransition': TaskStatus.FINISHING_TRANSITION,
    'ApplyingHdiffPatches': TaskStatus.APPLYING_HDIFF_PATCHES,
    'DeletingObsoleteFiles': TaskStatus.DELETING_OBSOLETE_FILES,
    'Finished': TaskStatus.FINISHED,
}


class Updater(Protocol):
    """Running download/patch operation provided by a game or component."""

    def is_finished(self) -> bool: ...

    def current(self) -> int: ...

    def total(self) -> int: ...

    def status(self) -> object:
        """Return the updater status, either its name or an enum member.

        Raises on failure of the underlying operation.
        """


class Diff(Protocol):
    """Difference between the installed and latest game version."""

    def install(self) -> Updater | None: ...


class ComponentVersion(Protocol):
    """Downloadable runtime component (wine or dxvk build)."""

    name: str
    title: str

    def is_downloaded(self, folder: Path) -> bool: ...

    def download(self, folder: Path) -> Updater | None: ...


def map_updater_status(status: object) -> TaskStatus:
    """Map an updater status onto `TaskStatus`.

    Accepts either a status name or an enum member whose ``name`` is one of
    `UPDATER_STATUSES`.
    """
    name = getattr(status, 'name', status)
    try:
        return UPDATER_STATUSES[name]
    except (KeyError, TypeError):
        raise StatusQueryError(f'Unknown updater status: {status!r}') from None


@dataclass(kw_only=True)
class UpdaterResolvedTask(ResolvedTask):
    """Resolved task backed by an `Updater`."""

    updater: Updater

    def is_finished(self) -> bool:
        try:
            return self.updater.is_finished()
        except Exception as e:  # noqa: BLE001
            raise StatusQueryError(str(e)) from e

    def _poll_progress(self) -> tuple[int, int]:
        try:
            return self.updater.current(), self.updater.total()
        except Exception as e:  # noqa: BLE001
            raise StatusQueryError(str(e)) from e

    def _poll_status(self) -> TaskStatus:
        try:
            status = self.updater.status()
        except Exception as e:  # noqa: BLE001
            raise StatusQueryError(str(e)) from e
        return map_updater_status(status)


@dataclass(kw_only=True)
class DownloadDiffResolvedTask(UpdaterResolvedTask):
    STATUSES = (
        TaskStatus.PREPARING_TRANSITION,
        TaskStatus.DOWNLOADING,
        TaskStatus.UNPACKING,
        TaskStatus.FINISHING_TRANSITION,
        TaskStatus.APPLYING_HDIFF_PATCHES,
        TaskStatus.DELETING_OBSOLETE_FILES,
        TaskStatus.FINISHED,
    )


@dataclass(frozen=True, kw_only=True)
class DownloadDiffQueuedTask(QueuedTask):
    """Install a game version diff."""

    diff: Diff = field(repr=False)

    def resolve(self) -> DownloadDiffResolvedTask:
        try:
            updater = self.diff.install()
        except Exception as e:  # noqa: BLE001
            raise ResolutionError(str(e)) from e
        if updater is None:
            raise ResolutionError(NO_APPLICABLE_UPDATE)
        return DownloadDiffResolvedTask.from_queued(self, updater=updater)


@dataclass(kw_only=True)
class DownloadComponentResolvedTask(UpdaterResolvedTask):
    STATUSES = (
        TaskStatus.PREPARING_TRANSITION,
        TaskStatus.DOWNLOADING,
        TaskStatus.UNPACKING,
        TaskStatus.FINISHING_TRANSITION,
        TaskStatus.FINISHED,
    )


@dataclass(frozen=True, kw_only=True)
class DownloadComponentQueuedTask(QueuedTask):
    """Download a runtime component such as wine or dxvk."""

    version: ComponentVersion = field(repr=False)
    folder: Path

    def resolve(self) -> DownloadComponentResolvedTask:
        try:
            updater = self.version.download(self.folder)
        except Exception as e:  # noqa: BLE001
            raise ResolutionError(str(e)) from e
        if updater is None:
            raise ResolutionError(NO_APPLICABLE_UPDATE)
        return DownloadComponentResolvedTask.from_queued(self, updater=updater)


@dataclass(frozen=True)
class PrefixStep:
    """One command run while creating a wine prefix."""

    status: TaskStatus
    args: tuple[str, ...]


@dataclass(kw_only=True)
class CreatePrefixResolvedTask(ResolvedTask):
    """Run prefix creation steps one after another."""

    STATUSES = (
        TaskStatus.CREATING_PREFIX,
        TaskStatus.INSTALLING_FONTS,
        TaskStatus.FINISHED,
    )

    steps: Sequence[PrefixStep]
    env: dict[str, str] = field(repr=False)
    _index: int = field(default=0, init=False, repr=False)
    _process: subprocess.Popen | None = field(
        default=None, init=False, repr=False
    )
    _error: str | None = field(default=None, init=False, repr=False)

    def start(self) -> None:
        """Start the first step.

        Raises
        ------
        ResolutionError
            If the step executable cannot be started.
        """
        try:
            self._spawn()
        except OSError as e:
            raise ResolutionError(str(e)) from e

    def _spawn(self) -> None:
        step = self.steps[self._index]
        log.debug("Starting '%s'", ' '.join(step.args))
        self._process = subprocess.Popen(
            step.args,
            env=self.env,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )

    def _refresh(self) -> None:
        if self._error or self._process is None:
            return
        exit_code = self._process.poll()
        if exit_code is None:
            return
        step = self.steps[self._index]
        if exit_code != 0:
            self._error = (
                f"'{step.args[0]}' finished with exit code {exit_code}"
            )
            self._process = None
            return
        self._index += 1
        self._process = None
        if self._index < len(self.steps):
            try:
                self._spawn()
            except OSError as e:
                self._error = str(e)

    def is_finished(self) -> bool:
        self._refresh()
        return self._error is None and self._index >= len(self.steps)

    def _poll_progress(self) -> tuple[int, int]:
        return self._index, len(self.steps)

    def _poll_status(self) -> TaskStatus:
        self._refresh()
        if self._error is not None:
            raise StatusQueryError(self._error)
        if self._index >= len(self.steps):
            return TaskStatus.FINISHED
        return self.steps[self._index].status

    def _on_release(self) -> None:
        if self._process is not None and self._process.poll() is None:
            self._process.terminate()
            self._process.wait()
        self._process = None


@dataclass(frozen=True, kw_only=True)
class CreatePrefixQueuedTask(QueuedTask):
    """Create a wine prefix, optionally installing the core fonts."""

    variant: CardVariant = CardVariant.WINE_PREFIX
    path: Path
    install_corefonts: bool = True
    wine: str = 'wine'

    def steps(self) -> list[PrefixStep]:
        """Commands needed to create the prefix."""
        steps = [
            PrefixStep(
                TaskStatus.CREATING_PREFIX, (self.wine, 'wineboot', '-i')
            )
        ]
        if self.install_corefonts:
            steps.append(
                PrefixStep(
                    TaskStatus.INSTALLING_FONTS,
                    ('winetricks', '-q', 'corefonts'),
                )
            )
        return steps

    def environment(self, env: dict[str, str] | None = None) -> dict[str, str]:
        "Changes needed in the environment variables."
        if env is None:
            env = dict(os.environ)
        env['WINEPREFIX'] = str(self.path)
        env['WINE'] = self.wine
        if log.getEffectiveLevel() >= 30:  # WARNING and above
            env.setdefault('WINEDEBUG', '-all')
        return env

    def resolve(self) -> CreatePrefixResolvedTask:
        try:
            Path(self.path).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ResolutionError(str(e)) from e
        task = CreatePrefixResolvedTask.from_queued(
            self, steps=self.steps(), env=self.environment()
        )
        task.start()
        return task
