"""Exception types shared by the connector, services and API layer."""
from enum import Enum


class ConfigurationError(Exception):
    """Raised when required configuration (e.g. the database URL) is missing."""

    pass


class ConnectionFailure(Enum):
    """Cause classes for database connection failures."""

    AUTHENTICATION = "authentication"
    TIMEOUT = "timeout"
    NETWORK = "network"
    UNKNOWN = "unknown"


class DatabaseConnectionError(Exception):
    """Raised when the database connection cannot be established."""

    cause = ConnectionFailure.UNKNOWN

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DatabaseAuthenticationError(DatabaseConnectionError):
    """The database rejected the configured credentials."""

    cause = ConnectionFailure.AUTHENTICATION


class DatabaseTimeoutError(DatabaseConnectionError):
    """The database did not answer within the connect timeout."""

    cause = ConnectionFailure.TIMEOUT


class DatabaseUnreachableError(DatabaseConnectionError):
    """The database host could not be resolved or reached."""

    cause = ConnectionFailure.NETWORK


class NotFoundError(Exception):
    """Raised by write paths when a referenced record does not exist."""

    def __init__(self, entity: str, identifier: str | int) -> None:
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} not found: {identifier}")


class WriteFailureError(Exception):
    """Raised when a user-initiated write cannot be persisted."""

    pass
