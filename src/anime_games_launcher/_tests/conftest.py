import os

import pytest

# Run Qt headless unless the environment says otherwise.
os.environ.setdefault('QT_QPA_PLATFORM', 'offscreen')

from anime_games_launcher.base_qt_tasks_queue import TasksQueueDriver


@pytest.fixture
def driver(qtbot):
    driver = TasksQueueDriver(poll_interval=0.01, autostart=False)
    yield driver
    if driver.is_running():
        driver.shutdown()
        qtbot.waitUntil(lambda: not driver.is_running(), timeout=5_000)


@pytest.fixture
def events(driver):
    """Record every event emitted by the driver, in order."""
    recorded = []
    for name in (
        'jobStarted',
        'progressTick',
        'jobCompleted',
        'jobFailed',
        'allFinished',
    ):
        getattr(driver, name).connect(
            lambda data, name=name: recorded.append((name, data))
        )
    return recorded
