"""
Storekeeper Core — game identity, resource shapes, regions, claim times and
the error taxonomy shared by every other module.

Usage:
    from storekeeper.core import GameId, Region, extract_resource_info
"""

from storekeeper.core.claim_time import ClaimTime, next_claim_datetime_utc
from storekeeper.core.errors import (
    ApiError,
    AuthExpired,
    CommandError,
    ConfigInvalid,
    ConfigNotFound,
    ConfigParseFailed,
    ErrorCode,
    IoError,
    NetworkError,
    NotificationError,
    StorekeeperError,
    UnknownUidRegion,
)
from storekeeper.core.game_id import ApiProvider, GameId
from storekeeper.core.region import Region
from storekeeper.core.resource import (
    CooldownResource,
    ExpeditionResource,
    ResourceInfo,
    StaminaResource,
    extract_resource_info,
    resource_document,
)

__all__ = [
    "ApiError",
    "ApiProvider",
    "AuthExpired",
    "ClaimTime",
    "CommandError",
    "ConfigInvalid",
    "ConfigNotFound",
    "ConfigParseFailed",
    "CooldownResource",
    "ErrorCode",
    "ExpeditionResource",
    "GameId",
    "IoError",
    "NetworkError",
    "NotificationError",
    "Region",
    "ResourceInfo",
    "StaminaResource",
    "StorekeeperError",
    "UnknownUidRegion",
    "extract_resource_info",
    "next_claim_datetime_utc",
    "resource_document",
]
