"""
Region — server region for an account, with the per-game server strings
the vendor APIs expect and UID-prefix detection tables.
"""

from enum import Enum

from storekeeper.core.errors import UnknownUidRegion
from storekeeper.core.game_id import GameId


class Region(str, Enum):
    CHINA = "china"
    AMERICA = "america"
    EUROPE = "europe"
    ASIA = "asia"
    CHT = "cht"        # Taiwan / Hong Kong / Macao
    JAPAN = "japan"
    SEA = "sea"

    def genshin_region(self) -> str:
        return {
            Region.CHINA: "cn_gf01",
            Region.AMERICA: "os_usa",
            Region.EUROPE: "os_euro",
            Region.CHT: "os_cht",
        }.get(self, "os_asia")

    def hsr_region(self) -> str:
        return {
            Region.CHINA: "prod_gf_cn",
            Region.AMERICA: "prod_official_usa",
            Region.EUROPE: "prod_official_eur",
            Region.CHT: "prod_official_cht",
        }.get(self, "prod_official_asia")

    def zzz_region(self) -> str:
        return {
            Region.CHINA: "prod_gf_cn",
            Region.AMERICA: "prod_gf_us",
            Region.EUROPE: "prod_gf_eu",
            Region.JAPAN: "prod_gf_jp",
        }.get(self, "prod_gf_sg")

    def wuwa_region(self) -> str:
        return {
            Region.CHINA: "China",
            Region.AMERICA: "America",
            Region.EUROPE: "Europe",
            Region.ASIA: "Asia",
            Region.JAPAN: "Asia",
            Region.CHT: "HMT",
            Region.SEA: "SEA",
        }[self]

    # ── UID detection ──────────────────────────────────────

    @classmethod
    def from_genshin_uid(cls, uid: str) -> "Region":
        """Genshin UIDs are a server prefix followed by 8 digits."""
        region = _GENSHIN_PREFIXES.get(_server_prefix(uid))
        if region is None:
            raise UnknownUidRegion(uid)
        return region

    @classmethod
    def from_hsr_uid(cls, uid: str) -> "Region":
        region = _HSR_PREFIXES.get(_server_prefix(uid))
        if region is None:
            raise UnknownUidRegion(uid)
        return region

    @classmethod
    def from_zzz_uid(cls, uid: str) -> "Region":
        """8-digit UIDs are mainland China; 10-digit UIDs carry a 2-digit prefix."""
        if len(uid) == 8:
            return cls.CHINA
        if len(uid) == 10 and uid[:2] in _ZZZ_PREFIXES:
            return _ZZZ_PREFIXES[uid[:2]]
        raise UnknownUidRegion(uid)

    @classmethod
    def from_wuwa_player_id(cls, player_id: str) -> "Region":
        region = _WUWA_PREFIXES.get(player_id[:1])
        if region is None:
            raise UnknownUidRegion(player_id)
        return region

    @classmethod
    def detect(cls, game_id: GameId, uid: str) -> "Region":
        """Derive the region for any supported game from its UID / player id."""
        detectors = {
            GameId.GENSHIN_IMPACT: cls.from_genshin_uid,
            GameId.HONKAI_STAR_RAIL: cls.from_hsr_uid,
            GameId.ZENLESS_ZONE_ZERO: cls.from_zzz_uid,
            GameId.WUTHERING_WAVES: cls.from_wuwa_player_id,
        }
        return detectors[game_id](uid)

    def server_for(self, game_id: GameId) -> str:
        """The region string the given game's API expects."""
        return {
            GameId.GENSHIN_IMPACT: self.genshin_region,
            GameId.HONKAI_STAR_RAIL: self.hsr_region,
            GameId.ZENLESS_ZONE_ZERO: self.zzz_region,
            GameId.WUTHERING_WAVES: self.wuwa_region,
        }[game_id]()


def _server_prefix(uid: str) -> str:
    return uid[:max(len(uid) - 8, 0)]


_GENSHIN_PREFIXES = {
    "1": Region.CHINA, "2": Region.CHINA, "3": Region.CHINA, "5": Region.CHINA,
    "6": Region.AMERICA,
    "7": Region.EUROPE,
    "8": Region.ASIA, "18": Region.ASIA,
    "9": Region.CHT,
}

_HSR_PREFIXES = {
    "1": Region.CHINA, "2": Region.CHINA, "5": Region.CHINA,
    "6": Region.AMERICA,
    "7": Region.EUROPE,
    "8": Region.ASIA,
    "9": Region.CHT,
}

_ZZZ_PREFIXES = {
    "10": Region.AMERICA,
    "13": Region.JAPAN,
    "15": Region.EUROPE,
    "17": Region.ASIA,
}

_WUWA_PREFIXES = {
    "5": Region.AMERICA,
    "6": Region.EUROPE,
    "7": Region.ASIA,
    "8": Region.CHT,
    "9": Region.SEA,
}
