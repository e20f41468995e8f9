"""Exceptions raised by db-respawn.

Execution failures (a delete or reseed command rejected by the engine) are
not wrapped: they reach the caller exactly as the driver raised them.
"""


class RespawnError(Exception):
    """Base class for db-respawn errors."""

    pass


class DiscoveryError(RespawnError):
    """Raised when table, relationship, or temporal discovery fails.

    Attributes:
        command_text: The discovery query that failed, for diagnostics.
    """

    def __init__(self, message: str, command_text: str | None = None) -> None:
        super().__init__(message)
        self.command_text = command_text


class UnsupportedFeatureError(RespawnError, NotImplementedError):
    """Raised when an adapter is asked for a feature its engine lacks."""

    pass
