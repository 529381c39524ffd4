"""
GameId — the closed set of supported games and the API provider each one
belongs to. The provider is what rate-limit batching partitions on.
"""

from enum import Enum


class ApiProvider(str, Enum):
    HOYOLAB = "hoyolab"
    KURO = "kuro"


class GameId(str, Enum):
    GENSHIN_IMPACT = "genshin_impact"
    HONKAI_STAR_RAIL = "honkai_star_rail"
    ZENLESS_ZONE_ZERO = "zenless_zone_zero"
    WUTHERING_WAVES = "wuthering_waves"

    def as_str(self) -> str:
        """Stable snake_case id used for config sections, cache keys and events."""
        return self.value

    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    def short_id(self) -> str:
        """Short id used in i18n keys (``game.{short_id}.name``)."""
        return _SHORT_IDS[self]

    def api_provider(self) -> ApiProvider:
        return _PROVIDERS[self]

    @classmethod
    def all(cls) -> list["GameId"]:
        return [
            cls.GENSHIN_IMPACT,
            cls.HONKAI_STAR_RAIL,
            cls.ZENLESS_ZONE_ZERO,
            cls.WUTHERING_WAVES,
        ]


_DISPLAY_NAMES = {
    GameId.GENSHIN_IMPACT: "Genshin Impact",
    GameId.HONKAI_STAR_RAIL: "Honkai: Star Rail",
    GameId.ZENLESS_ZONE_ZERO: "Zenless Zone Zero",
    GameId.WUTHERING_WAVES: "Wuthering Waves",
}

_SHORT_IDS = {
    GameId.GENSHIN_IMPACT: "genshin",
    GameId.HONKAI_STAR_RAIL: "hsr",
    GameId.ZENLESS_ZONE_ZERO: "zzz",
    GameId.WUTHERING_WAVES: "wuwa",
}

_PROVIDERS = {
    GameId.GENSHIN_IMPACT: ApiProvider.HOYOLAB,
    GameId.HONKAI_STAR_RAIL: ApiProvider.HOYOLAB,
    GameId.ZENLESS_ZONE_ZERO: ApiProvider.HOYOLAB,
    GameId.WUTHERING_WAVES: ApiProvider.KURO,
}
