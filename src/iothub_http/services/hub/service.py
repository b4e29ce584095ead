"""Device registry and device messaging endpoints of an IoT Hub.

Service-wide operations (device registry) need service credentials, i.e. a
connection string without ``DeviceId``. Message operations act on behalf of
the device named in the connection string.
"""
from __future__ import annotations

import json
from typing import Any
from urllib.parse import quote

import httpx

from .client import HubResponse, IotHubHttpClient
from .errors import DeviceScopeError
from .settings import HubClientSettings


class IotHubService:
    def __init__(self, client: IotHubHttpClient):
        self.client = client

    @classmethod
    def from_connection_string(
        cls,
        connection_string: str,
        settings: HubClientSettings | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> "IotHubService":
        return cls(IotHubHttpClient.from_connection_string(connection_string, settings, transport=transport))

    @property
    def is_device(self) -> bool:
        return self.client.is_device

    @property
    def device_id(self) -> str:
        return self.client.credentials.device_id

    # ---------- helpers -------------------------------------------------------
    def _url(self, path: str, **params: Any) -> str:
        params["api-version"] = self.client.settings.api_version
        return self.client.url(path, params)

    def _require_service(self, operation: str) -> None:
        if self.is_device:
            raise DeviceScopeError(
                f"{operation} needs service credentials; the connection string names device {self.device_id!r}",
                operation=operation,
                device_scoped=True,
            )

    def _require_device(self, operation: str) -> None:
        if not self.is_device:
            raise DeviceScopeError(
                f"{operation} needs a DeviceId in the connection string",
                operation=operation,
                device_scoped=False,
            )

    # ---------- service API ---------------------------------------------------
    def create_device(self, device_id: str) -> HubResponse:
        """Create (or overwrite) the registry entry for ``device_id``."""
        self._require_service("create_device")
        body = json.dumps({"deviceId": device_id}, separators=(",", ":"))
        return self.client.perform("PUT", self._url(f"/devices/{_segment(device_id)}"), body)

    def get_device(self, device_id: str) -> HubResponse:
        self._require_service("get_device")
        return self.client.perform("GET", self._url(f"/devices/{_segment(device_id)}"))

    def delete_device(self, device_id: str) -> HubResponse:
        """Delete ``device_id`` whatever its current etag."""
        self._require_service("delete_device")
        return self.client.perform("DELETE", self._url(f"/devices/{_segment(device_id)}"))

    def purge_commands(self, device_id: str) -> HubResponse:
        """Drop the cloud-to-device commands still queued for ``device_id``."""
        self._require_service("purge_commands")
        return self.client.perform("DELETE", self._url(f"/devices/{_segment(device_id)}/commands"))

    def list_devices(self, top: int) -> HubResponse:
        self._require_service("list_devices")
        return self.client.perform("GET", self._url("/devices", top=int(top)))

    # ---------- device API ----------------------------------------------------
    def send_message(self, message: str) -> HubResponse:
        """Send a device-to-cloud event; ``message`` is passed through untouched."""
        self._require_device("send_message")
        return self.client.perform("POST", self._url(f"/devices/{_segment(self.device_id)}/messages/events"), message)

    def receive_message(self) -> HubResponse:
        self._require_device("receive_message")
        return self.client.perform("GET", self._url(f"/devices/{_segment(self.device_id)}/messages/deviceBound"))

    # ------------------------------------------------------------------
    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "IotHubService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _segment(device_id: str) -> str:
    return quote(device_id, safe="")


__all__ = ["IotHubService"]
