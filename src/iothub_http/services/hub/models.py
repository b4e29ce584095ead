"""Dataclasses for the device records returned by the registry endpoints."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping

from .errors import DeviceRecordError

__all__ = [
    "Device",
    "AuthenticationMechanism",
    "SymmetricKey",
    "X509Thumbprint",
    "CONNECTION_STATES",
    "DEVICE_STATUSES",
]

CONNECTION_STATES = ("disconnected", "connected")
DEVICE_STATUSES = ("disabled", "enabled")


def _str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value)


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise DeviceRecordError(f"{key} must be an object")
    return value


@dataclass(slots=True)
class SymmetricKey:
    primary_key: str = ""
    secondary_key: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SymmetricKey":
        return cls(primary_key=_str(data, "primaryKey"), secondary_key=_str(data, "secondaryKey"))


@dataclass(slots=True)
class X509Thumbprint:
    primary_thumbprint: str = ""
    secondary_thumbprint: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "X509Thumbprint":
        return cls(
            primary_thumbprint=_str(data, "primaryThumbprint"),
            secondary_thumbprint=_str(data, "secondaryThumbprint"),
        )


@dataclass(slots=True)
class AuthenticationMechanism:
    symmetric_key: SymmetricKey = field(default_factory=SymmetricKey)
    x509_thumbprint: X509Thumbprint = field(default_factory=X509Thumbprint)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AuthenticationMechanism":
        return cls(
            symmetric_key=SymmetricKey.from_dict(_section(data, "symmetricKey")),
            x509_thumbprint=X509Thumbprint.from_dict(_section(data, "x509Thumbprint")),
        )


@dataclass(slots=True)
class Device:
    device_id: str
    generation_id: str = ""
    etag: str = ""
    connection_state: str = ""
    status: str = ""
    status_reason: str = ""
    connection_state_updated_time: str = ""
    status_updated_time: str = ""
    last_activity_time: str = ""
    cloud_to_device_message_count: int = 0
    authentication: AuthenticationMechanism = field(default_factory=AuthenticationMechanism)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Device":
        """Build a device from the service JSON and check its enumerated fields."""
        if not isinstance(data, Mapping):
            raise DeviceRecordError("device record must be a JSON object")
        connection_state = _str(data, "connectionState")
        if connection_state.lower() not in CONNECTION_STATES:
            raise DeviceRecordError(f"The connection state is not recognized: {connection_state}")
        status = _str(data, "status")
        if status.lower() not in DEVICE_STATUSES:
            raise DeviceRecordError(f"This status is not recognized: {status}")
        try:
            message_count = int(data.get("cloudToDeviceMessageCount") or 0)
        except (TypeError, ValueError) as exc:
            raise DeviceRecordError("cloudToDeviceMessageCount must be an integer") from exc
        return cls(
            device_id=_str(data, "deviceId"),
            generation_id=_str(data, "generationId"),
            etag=_str(data, "etag"),
            connection_state=connection_state,
            status=status,
            status_reason=_str(data, "statusReason"),
            connection_state_updated_time=_str(data, "connectionStateUpdatedTime"),
            status_updated_time=_str(data, "statusUpdatedTime"),
            last_activity_time=_str(data, "lastActivityTime"),
            cloud_to_device_message_count=message_count,
            authentication=AuthenticationMechanism.from_dict(_section(data, "authentication")),
        )

    @classmethod
    def from_json(cls, text: str) -> "Device":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise DeviceRecordError(f"device record is not valid JSON: {exc}") from exc
        return cls.from_dict(data)

    @property
    def is_connected(self) -> bool:
        return self.connection_state.lower() == "connected"

    @property
    def is_enabled(self) -> bool:
        return self.status.lower() == "enabled"
