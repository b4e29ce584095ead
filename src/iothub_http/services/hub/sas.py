"""Shared Access Signature tokens.

The service verifies ``HMAC-SHA256(key, quote_plus(lower(resource)) + "\\n" + expiry)``
where ``key`` is the base64-decoded shared access key. The header value is::

    SharedAccessSignature sr=<resource>&sig=<signature>&se=<expiry>[&skn=<key name>]

Tokens are cheap, so a fresh one is built for every request.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import time
from dataclasses import dataclass
from urllib.parse import quote_plus

import httpx

from iothub_http.config import const

from .errors import ConnectionStringError, HubConfigError


@dataclass(frozen=True, slots=True)
class SasToken:
    resource_uri: str
    expiry: int
    signature: str
    key_name: str = ""

    def __str__(self) -> str:
        token = f"SharedAccessSignature sr={self.resource_uri}&sig={self.signature}&se={self.expiry}"
        if self.key_name:
            token += f"&skn={self.key_name}"
        return token


def _escape(value: str) -> str:
    return quote_plus(value, safe="")


def _decode_key(key: str | bytes) -> bytes:
    if isinstance(key, bytes):
        return key
    try:
        return base64.b64decode(key, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ConnectionStringError("SharedAccessKey is not valid base64") from exc


def sign(encoded_resource: str, expiry: int, key: bytes) -> str:
    """Return the base64 HMAC-SHA256 signature (not yet URL-escaped)."""
    to_sign = f"{encoded_resource}\n{expiry}".encode("utf-8")
    digest = hmac.new(key, to_sign, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def build_sas_token(
    resource: str,
    key: str | bytes,
    *,
    key_name: str = "",
    now: float | None = None,
    ttl: int = const.TOKEN_TTL,
) -> SasToken:
    """Sign ``resource`` with ``key`` (base64 text or already-decoded bytes)."""
    binary_key = _decode_key(key)
    issued = int(time.time() if now is None else now)
    expiry = issued + int(ttl)
    encoded_resource = _escape(resource.lower())
    signature = _escape(sign(encoded_resource, expiry, binary_key))
    return SasToken(resource_uri=encoded_resource, expiry=expiry, signature=signature, key_name=key_name)


def generate_sas_token(
    resource: str,
    key: str | bytes,
    *,
    key_name: str = "",
    now: float | None = None,
    ttl: int = const.TOKEN_TTL,
) -> str:
    return str(build_sas_token(resource, key, key_name=key_name, now=now, ttl=ttl))


def resource_for(url: str | httpx.URL, host: str, scope: str = const.RESOURCE_SCOPE_HOST) -> str:
    """Pick the string to sign for a request to ``url``.

    ``host`` scope signs the bare host name, ``path`` scope signs the host
    followed by the request path (the query string is never signed).
    """
    if scope == const.RESOURCE_SCOPE_HOST:
        return host
    if scope == const.RESOURCE_SCOPE_PATH:
        return f"{host}{httpx.URL(url).path}"
    raise HubConfigError(f"unknown resource scope: {scope!r}")


__all__ = ["SasToken", "build_sas_token", "generate_sas_token", "resource_for", "sign"]
