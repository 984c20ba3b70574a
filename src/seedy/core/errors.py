"""All the exceptions raised by seedy."""


class SeedyError(Exception):
    """Base class for every error raised by seedy."""


class ConfigError(SeedyError):
    """Raised when the configuration is invalid."""


class StartupError(SeedyError):
    """Raised when seedy cannot reach the orchestrator or the queue at
    startup."""


class DecodeError(SeedyError):
    """Raised when a notification payload cannot be decoded into a push
    event."""


class InventoryError(SeedyError):
    """Raised when the list of running services cannot be fetched."""


class DispatchError(SeedyError):
    """Raised when the orchestrator does not accept an update for a service.

    Arguments:
        service_id: the service that could not be updated.
        kind: the category of the failure.
    """

    def __init__(self, message: str, service_id: str, kind):
        super().__init__(message)

        self.service_id = service_id
        self.kind = kind


class CredentialsError(SeedyError):
    """Raised when the registry credentials cannot be retrieved."""


class QueueError(SeedyError):
    """Raised when the message queue cannot be reached."""
