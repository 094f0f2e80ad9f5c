import pytest

from anime_games_launcher.tasks import (
    QueuedTask,
    ResolvedTask,
    StatusQueryError,
    TaskStatus,
)
from anime_games_launcher.variants import CardVariant


class _ScriptedTask(ResolvedTask):
    """Resolved task replaying a list of ``(current, total, status)``."""

    def __init__(self, script, **kwargs):
        super().__init__(**kwargs)
        self.script = list(script)
        self.released = 0

    def is_finished(self):
        return self.script[0][2] == TaskStatus.FINISHED

    def _poll_progress(self):
        current, total, _ = self.script[0]
        return current, total

    def _poll_status(self):
        status = self.script[0][2]
        if len(self.script) > 1:
            self.script.pop(0)
        return status

    def _on_release(self):
        self.released += 1


def _scripted(script):
    return _ScriptedTask(
        script, variant=CardVariant.GENSHIN, title='Genshin', author='me'
    )


def test_not_implemented_methods():
    task = QueuedTask(variant=CardVariant.GENSHIN)
    with pytest.raises(NotImplementedError):
        task.resolve()

    resolved = ResolvedTask(variant=CardVariant.WINE, title='', author='')
    with pytest.raises(NotImplementedError):
        resolved.is_finished()

    with pytest.raises(NotImplementedError):
        resolved.progress()

    with pytest.raises(NotImplementedError):
        resolved.status()


def test_title_and_author_default_to_variant():
    task = QueuedTask(variant=CardVariant.GENSHIN)
    assert task.title == 'Genshin Impact'
    assert task.author == 'miHoYo'

    task = QueuedTask(variant=CardVariant.WINE, title='Wine-GE 8.2')
    assert task.title == 'Wine-GE 8.2'
    assert task.author == ''


def test_queued_task_is_immutable():
    task = QueuedTask(variant=CardVariant.GENSHIN)
    with pytest.raises(AttributeError):
        task.title = 'other'


def test_progress_is_monotonic():
    task = _scripted(
        [
            (10, 100, TaskStatus.DOWNLOADING),
            (5, 100, TaskStatus.DOWNLOADING),
            (60, 100, TaskStatus.FINISHED),
        ]
    )
    assert task.progress() == (10, 100, 0.1)
    task.status()
    assert task.progress() == (10, 100, 0.1)
    task.status()
    assert task.progress() == (60, 100, 0.6)


@pytest.mark.parametrize(
    ('current', 'total', 'ratio'),
    [(0, 0, 0.0), (5, 0, 0.0), (0, 10, 0.0), (10, 10, 1.0), (15, 10, 1.0)],
)
def test_progress_ratio_bounds(current, total, ratio):
    task = _scripted([(current, total, TaskStatus.DOWNLOADING)])
    assert task.progress()[2] == ratio


def test_status_never_goes_backwards():
    task = _scripted(
        [
            (0, 1, TaskStatus.UNPACKING),
            (0, 1, TaskStatus.DOWNLOADING),
            (1, 1, TaskStatus.FINISHED),
        ]
    )
    assert task.status() == TaskStatus.UNPACKING
    assert task.status() == TaskStatus.UNPACKING
    assert task.status() == TaskStatus.FINISHED


def test_status_outside_task_kind():
    class _DownloadOnly(_ScriptedTask):
        STATUSES = (TaskStatus.DOWNLOADING, TaskStatus.FINISHED)

    task = _DownloadOnly(
        [(0, 1, TaskStatus.CREATING_PREFIX)],
        variant=CardVariant.DXVK,
        title='DXVK',
        author='',
    )
    with pytest.raises(StatusQueryError, match='CREATING_PREFIX'):
        task.status()


def test_release_only_once():
    task = _scripted([(0, 1, TaskStatus.FINISHED)])
    task.release()
    task.release()
    assert task.released == 1


def test_status_order_and_labels():
    statuses = list(TaskStatus)
    assert statuses == sorted(statuses)
    assert statuses[-1] is TaskStatus.FINISHED
    assert TaskStatus.APPLYING_HDIFF_PATCHES.label == 'Applying hdiff patches'
