from enum import StrEnum, auto


class CardVariant(StrEnum):
    "Games and runtime components the launcher can install"

    GENSHIN = auto()
    HONKAI_STAR_RAIL = auto()
    HONKAI_IMPACT = auto()
    PUNISHING_GRAY_RAVEN = auto()

    WINE = auto()
    DXVK = auto()
    WINE_PREFIX = auto()

    @classmethod
    def games(cls) -> list['CardVariant']:
        """Game variants in the order they are shown to the user."""
        return [variant for variant in cls if variant.is_game]

    @property
    def is_game(self) -> bool:
        return self in _GAMES

    @property
    def display_title(self) -> str:
        return _METADATA[self][0]

    @property
    def author(self) -> str:
        return _METADATA[self][1]


_GAMES = frozenset(
    {
        CardVariant.GENSHIN,
        CardVariant.HONKAI_STAR_RAIL,
        CardVariant.HONKAI_IMPACT,
        CardVariant.PUNISHING_GRAY_RAVEN,
    }
)

# variant -> (title, author)
_METADATA: dict[CardVariant, tuple[str, str]] = {
    CardVariant.GENSHIN: ('Genshin Impact', 'miHoYo'),
    CardVariant.HONKAI_STAR_RAIL: ('Honkai: Star Rail', 'miHoYo'),
    CardVariant.HONKAI_IMPACT: ('Honkai Impact 3rd', 'miHoYo'),
    CardVariant.PUNISHING_GRAY_RAVEN: ('Punishing: Gray Raven', 'Kuro Games'),
    CardVariant.WINE: ('Wine', ''),
    CardVariant.DXVK: ('DXVK', ''),
    CardVariant.WINE_PREFIX: ('Wine prefix', ''),
}
