"""Parsing and formatting of IoT Hub connection strings.

A connection string is a list of ``Key=Value`` pairs separated by ``;`` (or
``&``, URL-query style)::

    HostName=<host>;SharedAccessKeyName=<name>;SharedAccessKey=<base64>;DeviceId=<id>

Values go through query-string unescaping, which turns ``+`` into a space.
Base64 secrets legitimately contain ``+``, so every space is turned back into
``+`` once a value has been decoded.
"""
from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from urllib.parse import unquote_plus

from .errors import ConnectionStringError

_SEPARATORS = re.compile(r"[;&]")

# connection string key -> ConnectionString field
_FIELDS: dict[str, str] = {
    "HostName": "host_name",
    "SharedAccessKeyName": "shared_access_key_name",
    "SharedAccessKey": "shared_access_key",
    "SharedAccessKeyValue": "shared_access_key",
    "DeviceId": "device_id",
}

# canonical output order, optional keys are skipped when empty
_CANONICAL: tuple[tuple[str, str, bool], ...] = (
    ("HostName", "host_name", True),
    ("SharedAccessKeyName", "shared_access_key_name", False),
    ("SharedAccessKey", "shared_access_key", True),
    ("DeviceId", "device_id", False),
)


@dataclass(frozen=True, slots=True)
class ConnectionString:
    """Credentials extracted from a connection string."""

    host_name: str
    shared_access_key: str
    shared_access_key_name: str = ""
    device_id: str = ""

    @property
    def is_device(self) -> bool:
        """True when a device id was given, i.e. the client is device scoped."""
        return self.device_id != ""

    def decoded_key(self) -> bytes:
        try:
            return base64.b64decode(self.shared_access_key, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ConnectionStringError("SharedAccessKey is not valid base64") from exc

    def to_connection_string(self) -> str:
        parts: list[str] = []
        for key, attr, required in _CANONICAL:
            value = getattr(self, attr)
            if value or required:
                parts.append(f"{key}={_escape(value)}")
        return ";".join(parts)

    def __str__(self) -> str:
        return self.to_connection_string()


def _escape(value: str) -> str:
    # '%' first so the escapes below are not escaped twice; '+' is restored on parse
    return value.replace("%", "%25").replace(";", "%3B").replace("&", "%26")


def _unescape(value: str) -> str:
    return unquote_plus(value).replace(" ", "+")


def parse_connection_string(text: str) -> ConnectionString:
    """Split ``text`` into credentials.

    Unknown keys are ignored and the first occurrence of a repeated key wins.
    Missing ``SharedAccessKeyName`` / ``DeviceId`` come back as empty strings.
    Only a string that cannot be split into ``key=value`` pairs is an error.
    """
    if not text or not text.strip():
        raise ConnectionStringError("connection string is empty")

    values: dict[str, str] = {}
    for segment in _SEPARATORS.split(text.strip()):
        if not segment:
            continue
        key, sep, raw = segment.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConnectionStringError(f"malformed connection string segment: {segment!r}")
        attr = _FIELDS.get(key)
        if attr is None or attr in values:
            continue
        values[attr] = _unescape(raw)

    return ConnectionString(
        host_name=values.get("host_name", ""),
        shared_access_key=values.get("shared_access_key", ""),
        shared_access_key_name=values.get("shared_access_key_name", ""),
        device_id=values.get("device_id", ""),
    )


__all__ = ["ConnectionString", "parse_connection_string"]
