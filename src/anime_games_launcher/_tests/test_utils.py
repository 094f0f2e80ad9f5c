import pytest

from anime_games_launcher.utils import is_prefix_created, progress_ratio
from anime_games_launcher.variants import CardVariant


@pytest.mark.parametrize(
    ('hives', 'expected'),
    [
        (('system.reg', 'user.reg', 'userdef.reg'), True),
        (('system.reg', 'user.reg'), False),
        ((), False),
    ],
)
def test_is_prefix_created(hives, expected, tmp_path):
    for hive in hives:
        (tmp_path / hive).touch()

    assert is_prefix_created(tmp_path) is expected


def test_is_prefix_created_missing_folder(tmp_path):
    assert not is_prefix_created(tmp_path / 'does-not-exist')


@pytest.mark.parametrize(
    ('current', 'total', 'expected'),
    [
        (0, 0, 0.0),
        (10, 0, 0.0),
        (0, 100, 0.0),
        (25, 100, 0.25),
        (100, 100, 1.0),
        (150, 100, 1.0),
        (-5, 100, 0.0),
    ],
)
def test_progress_ratio(current, total, expected):
    assert progress_ratio(current, total) == expected


def test_card_variants():
    assert CardVariant.games() == [
        CardVariant.GENSHIN,
        CardVariant.HONKAI_STAR_RAIL,
        CardVariant.HONKAI_IMPACT,
        CardVariant.PUNISHING_GRAY_RAVEN,
    ]
    assert CardVariant.GENSHIN == 'genshin'
    assert CardVariant.GENSHIN.display_title == 'Genshin Impact'
    assert CardVariant.PUNISHING_GRAY_RAVEN.author == 'Kuro Games'
    assert not CardVariant.WINE.is_game
    assert CardVariant.WINE.author == ''
    for variant in CardVariant:
        assert variant.display_title
