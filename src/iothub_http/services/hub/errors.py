"""Exception hierarchy shared by the IoT Hub client layers."""
from __future__ import annotations


class IotHubError(RuntimeError):
    """Base class for every error raised by :mod:`iothub_http`."""


class HubConfigError(IotHubError):
    """Raised when the client cannot be configured to build any request."""


class ConnectionStringError(HubConfigError):
    """Raised for a malformed connection string or an undecodable shared key."""


class DeviceScopeError(HubConfigError):
    """Raised when an operation does not match the client's device/service mode."""

    def __init__(self, message: str, *, operation: str, device_scoped: bool):
        super().__init__(message)
        self.operation = operation
        self.device_scoped = device_scoped


class HubTransportError(IotHubError):
    """Raised when a request could not be delivered (DNS, TLS, connect, timeout)."""

    def __init__(self, message: str, *, method: str, url: str):
        super().__init__(message)
        self.method = method
        self.url = url


class DeviceRecordError(ValueError):
    """Raised when a device record returned by the service cannot be decoded."""


__all__ = [
    "IotHubError",
    "HubConfigError",
    "ConnectionStringError",
    "DeviceScopeError",
    "HubTransportError",
    "DeviceRecordError",
]
