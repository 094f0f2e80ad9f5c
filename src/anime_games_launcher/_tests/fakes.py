from pathlib import Path


class UpdaterError(Exception):
    pass


class FakeUpdater:
    """Updater that moves one step forward every time it is refreshed.

    Steps are ``(current, total, status)`` tuples; an exception instance in
    any position is raised from the matching accessor.
    """

    def __init__(self, steps):
        self.steps = list(steps)
        self.index = -1

    def _value(self, position):
        value = self.steps[max(self.index, 0)][position]
        if isinstance(value, Exception):
            raise value
        return value

    def is_finished(self):
        self.index = min(self.index + 1, len(self.steps) - 1)
        return self.steps[self.index][2] == 'Finished'

    def current(self):
        return self._value(0)

    def total(self):
        return self._value(1)

    def status(self):
        return self._value(2)


class FakeDiff:
    def __init__(self, updater=None, error=None):
        self.updater = updater
        self.error = error
        self.installs = 0

    def install(self):
        self.installs += 1
        if self.error is not None:
            raise self.error
        return self.updater


class FakeComponentVersion:
    def __init__(self, name, title, downloaded=False, updater=None):
        self.name = name
        self.title = title
        self.downloaded = downloaded
        self.updater = updater
        self.folders: list[Path] = []

    def is_downloaded(self, folder):
        return self.downloaded

    def download(self, folder):
        self.folders.append(folder)
        return self.updater


def download_steps(*currents, total=100):
    """Downloading steps ending with a finished one at the last value."""
    steps = [(current, total, 'Downloading') for current in currents[:-1]]
    steps.append((currents[-1], total, 'Finished'))
    return steps

