"""
Error taxonomy shared by the vendor clients, config layer and commands.

Vendor clients raise NetworkError for anything worth retrying and ApiError
for permanent failures. Commands surface a CommandError {code, message}
to the UI instead of raw exception strings.
"""

from enum import Enum

from pydantic import BaseModel


class StorekeeperError(Exception):
    """Base class for all storekeeper errors."""


class ConfigNotFound(StorekeeperError):
    def __init__(self, path):
        self.path = path
        super().__init__(f"Configuration file not found: {path}")


class ConfigInvalid(StorekeeperError):
    """Config could not be parsed or failed validation."""


class ConfigParseFailed(ConfigInvalid):
    pass


class UnknownUidRegion(ConfigInvalid):
    def __init__(self, uid: str):
        self.uid = uid
        super().__init__(f"Cannot determine region from UID: {uid}")


class IoError(StorekeeperError):
    pass


class NetworkError(StorekeeperError):
    """Transient transport failure (timeout, reset, DNS, 5xx)."""


class ApiError(StorekeeperError):
    """Vendor rejected the request (4xx or non-success response code)."""

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(f"API error {code}: {message}")


class AuthExpired(ApiError):
    """Vendor reported the session cookie / oauth code is no longer valid."""


class NotificationError(StorekeeperError):
    pass


class ErrorCode(str, Enum):
    CONFIG_NOT_FOUND = "CONFIG_NOT_FOUND"
    CONFIG_INVALID = "CONFIG_INVALID"
    IO_ERROR = "IO_ERROR"
    NOTIFICATION_ERROR = "NOTIFICATION_ERROR"
    INTERNAL = "INTERNAL"


_CODE_FOR_ERROR = [
    (ConfigNotFound, ErrorCode.CONFIG_NOT_FOUND),
    (ConfigInvalid, ErrorCode.CONFIG_INVALID),
    (IoError, ErrorCode.IO_ERROR),
    (OSError, ErrorCode.IO_ERROR),
    (NotificationError, ErrorCode.NOTIFICATION_ERROR),
]


class CommandError(BaseModel):
    """Structured error returned to the UI."""

    code: ErrorCode
    message: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> "CommandError":
        for exc_type, code in _CODE_FOR_ERROR:
            if isinstance(exc, exc_type):
                return cls(code=code, message=str(exc))
        return cls(code=ErrorCode.INTERNAL, message=str(exc))

    @classmethod
    def internal(cls, message: str) -> "CommandError":
        return cls(code=ErrorCode.INTERNAL, message=message)
