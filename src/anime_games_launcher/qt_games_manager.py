"""
Bookkeeping of installed, queued and available games.

`GamesManager` is the collaborator that feeds the tasks queue driver: it
builds tasks for the user requests and for the startup component checks,
and keeps the per-variant membership sets in sync with the driver events.
"""

import configparser
from collections.abc import Callable, Iterable
from logging import getLogger
from pathlib import Path

from qtpy.QtCore import QObject, Signal, Slot

from anime_games_launcher import config as launcher_config
from anime_games_launcher.base_qt_tasks_queue import (
    JobCompletedData,
    JobFailedData,
    TasksQueueDriver,
)
from anime_games_launcher.installer_tasks import (
    ComponentVersion,
    CreatePrefixQueuedTask,
    Diff,
    DownloadComponentQueuedTask,
    DownloadDiffQueuedTask,
)
from anime_games_launcher.tasks import ResolutionError
from anime_games_launcher.utils import is_prefix_created
from anime_games_launcher.variants import CardVariant

log = getLogger(__name__)

DiffResolver = Callable[[CardVariant], Diff]
VersionLookup = Callable[[], ComponentVersion]


class GamesManager(QObject):
    """Keep track of which games are installed, queued or available."""

    # title, message
    showToast = Signal(str, str)

    showTasksFlap = Signal()

    # emitted whenever a variant moves between installed/queued/available
    variantsChanged = Signal()

    def __init__(
        self,
        driver: TasksQueueDriver,
        diff_resolver: DiffResolver,
        installed: Iterable[CardVariant] = (),
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._driver = driver
        self._diff_resolver = diff_resolver
        self._installed = {v for v in installed if v.is_game}
        self._queued: set[CardVariant] = set()
        self._available = set(CardVariant.games()) - self._installed

        driver.jobCompleted.connect(self.finish_download_game_task)
        driver.jobFailed.connect(self._on_job_failed)

    # -------------------------- Public API ------------------------------
    def installed_games(self) -> list[CardVariant]:
        return [v for v in CardVariant.games() if v in self._installed]

    def queued_games(self) -> list[CardVariant]:
        return [v for v in CardVariant.games() if v in self._queued]

    def available_games(self) -> list[CardVariant]:
        return [v for v in CardVariant.games() if v in self._available]

    def add_download_game_task(self, variant: CardVariant) -> bool:
        """Queue the installation of the latest version of a game.

        Parameters
        ----------
        variant : CardVariant
            Game to install or update.

        Returns
        -------
        bool
            ``True`` if a task was queued, ``False`` if the game is already
            queued or installed, or if its diff could not be computed.
        """
        if not variant.is_game:
            raise ValueError(f'{variant} is not a game!')

        if variant in self._queued or variant in self._installed:
            log.debug('%s is already queued or installed', variant)
            return False

        try:
            diff = self._diff_resolver(variant)
        except (ResolutionError, OSError) as e:
            self._toast(f'Failed to get {variant.display_title} diff', str(e))
            return False

        self._driver.enqueue(
            DownloadDiffQueuedTask(variant=variant, diff=diff)
        )
        self._available.discard(variant)
        self._queued.add(variant)
        self.variantsChanged.emit()
        self.showTasksFlap.emit()
        return True

    def add_download_component_task(
        self,
        variant: CardVariant,
        version: ComponentVersion,
        folder: Path,
    ) -> None:
        """Queue the download of a wine or dxvk build into `folder`."""
        self._driver.enqueue(
            DownloadComponentQueuedTask(
                variant=variant,
                title=version.title,
                version=version,
                folder=folder,
            )
        )
        self.showTasksFlap.emit()

    def add_create_prefix_task(
        self, path: Path, install_corefonts: bool, wine: str = 'wine'
    ) -> None:
        """Queue the creation of a wine prefix at `path`."""
        self._driver.enqueue(
            CreatePrefixQueuedTask(
                path=path, install_corefonts=install_corefonts, wine=wine
            )
        )
        self.showTasksFlap.emit()

    def check_components(
        self,
        config: configparser.ConfigParser,
        wine_lookup: VersionLookup,
        dxvk_lookup: VersionLookup,
    ) -> int:
        """Queue the components needed to run games that are missing.

        Parameters
        ----------
        config : configparser.ConfigParser
            Launcher configuration, see `config.get_configuration`.
        wine_lookup, dxvk_lookup : Callable[[], ComponentVersion]
            Return the configured wine and dxvk versions.

        Returns
        -------
        int
            Number of queued tasks.
        """
        folder = launcher_config.components_folder(config)
        queued = 0
        wine = 'wine'

        for variant, lookup in (
            (CardVariant.WINE, wine_lookup),
            (CardVariant.DXVK, dxvk_lookup),
        ):
            try:
                version = lookup()
            except (LookupError, ValueError, OSError) as e:
                self._toast(
                    f'Failed to get {variant.display_title.lower()} version',
                    str(e),
                )
                continue

            if variant == CardVariant.WINE:
                wine = str(folder / version.name / 'bin' / 'wine')

            if not version.is_downloaded(folder):
                self.add_download_component_task(variant, version, folder)
                queued += 1

        prefix = launcher_config.prefix_path(config)
        if not is_prefix_created(prefix):
            self.add_create_prefix_task(
                prefix, launcher_config.install_corefonts(config), wine=wine
            )
            queued += 1

        return queued

    # -------------------------- Driver events ------------------------------
    @Slot(dict)
    def finish_download_game_task(self, data: JobCompletedData) -> None:
        variant = data['variant']
        if variant not in self._queued:
            return
        self._queued.remove(variant)
        self._installed.add(variant)
        self.variantsChanged.emit()

    @Slot(dict)
    def _on_job_failed(self, data: JobFailedData) -> None:
        self._toast(
            f"Failed to install {data['title']}", data['error_message']
        )
        variant = data['variant']
        if variant not in self._queued:
            return
        self._queued.remove(variant)
        self._available.add(variant)
        self.variantsChanged.emit()

    def _toast(self, title: str, message: str) -> None:
        log.warning('%s: %s', title, message)
        self.showToast.emit(title, message)
