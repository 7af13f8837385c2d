from __future__ import annotations

from enum import Enum

from homeassistant.exceptions import HomeAssistantError


class ErrorKind(str, Enum):
    """Classified reason the last poll failed."""

    TRANSPORT = "transport"
    API_LOGICAL = "api_logical"
    DEVICE_OPERATIONAL = "device_operational"


class JuiceBoxError(HomeAssistantError):
    """Base class for JuiceBox integration errors."""


class TransportError(JuiceBoxError):
    """Raised when the JuiceNet cloud cannot be reached or returns garbage."""

    kind = ErrorKind.TRANSPORT


class ApiLogicalError(JuiceBoxError):
    """Raised when JuiceNet answers but flags the request as failed."""

    kind = ErrorKind.API_LOGICAL

    def __init__(self, message: str, payload: object | None = None) -> None:
        super().__init__(message)
        self.payload = payload


class DeviceOperationalError(JuiceBoxError):
    """Raised when the charger itself reports an error or disconnect state."""

    kind = ErrorKind.DEVICE_OPERATIONAL


class CommunicationFailure(JuiceBoxError):
    """Raised by readers while the charger state is unknown."""

    def __init__(self, message: str, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        self.kind = kind


class MissingTelemetry(JuiceBoxError):
    """Raised when telemetry is read while no power-bearing state is active."""


class CommandRejected(JuiceBoxError):
    """Raised when a start/stop command cannot be issued."""


class CommandFailed(JuiceBoxError):
    """Raised when JuiceNet refused or failed a start/stop command."""
