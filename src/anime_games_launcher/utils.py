from pathlib import Path


def is_prefix_created(path: str | Path) -> bool:
    """Determines if a wine prefix was already created at `path`.

    Returns
    -------
    bool
        ``True`` if the prefix contains registry files, ``False`` if not.
    """
    # wineboot writes the registry hives at the prefix root once it is done
    prefix = Path(path)
    return all(
        (prefix / hive).is_file()
        for hive in ('system.reg', 'user.reg', 'userdef.reg')
    )


def progress_ratio(current: int, total: int) -> float:
    """Completion ratio of a task.

    Returns
    -------
    float
        ``current / total`` clamped to ``[0, 1]``, or ``0.0`` when
        ``total`` is zero.
    """
    if total <= 0:
        return 0.0
    return min(max(current / total, 0.0), 1.0)
