# src/iothub_http/services/hub/client.py
from __future__ import annotations

import logging
import threading
import time
from typing import Mapping, NamedTuple, NoReturn
from urllib.parse import urlencode

import httpx

from .connection_string import ConnectionString, parse_connection_string
from .errors import HubConfigError, HubTransportError
from .sas import build_sas_token, resource_for
from .settings import HubClientSettings

_log = logging.getLogger("iothub_http.client")


class HubResponse(NamedTuple):
    """Raw response: body text and the status line, e.g. ``"404 Not Found"``."""

    body: str
    status: str

    @property
    def status_code(self) -> int:
        code, _, _ = self.status.partition(" ")
        return int(code)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def _redact(token: str) -> str:
    head, sep, _ = token.partition("&sig=")
    return f"{head}{sep}<redacted>" if sep else token


class IotHubHttpClient:
    """Signs and sends requests to one IoT Hub over a shared connection pool.

    The pool is created once with the client and shared by every request, so
    concurrent callers reuse connections; ``httpx.Client`` is thread-safe.
    Non-2xx responses are returned as data, only delivery failures raise.
    """

    def __init__(
        self,
        credentials: ConnectionString,
        settings: HubClientSettings | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ):
        if not credentials.host_name:
            raise HubConfigError("HostName is required")
        if not credentials.shared_access_key:
            raise HubConfigError("SharedAccessKey is required")
        self.credentials = credentials
        self.settings = settings or HubClientSettings()
        # fails fast on a bad key instead of producing unusable tokens later
        self._key = credentials.decoded_key()
        cap = self.settings.max_idle_connections
        # callers queue here rather than inside the httpx pool
        self._slots = threading.BoundedSemaphore(cap)
        self._http = httpx.Client(
            timeout=self.settings.timeout,
            limits=httpx.Limits(max_connections=cap, max_keepalive_connections=cap),
            transport=transport,
        )

    @classmethod
    def from_connection_string(
        cls,
        connection_string: str,
        settings: HubClientSettings | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> "IotHubHttpClient":
        return cls(parse_connection_string(connection_string), settings, transport=transport)

    # ------------------------------------------------------------------
    @property
    def host_name(self) -> str:
        return self.credentials.host_name

    @property
    def is_device(self) -> bool:
        return self.credentials.is_device

    def url(self, path: str, params: Mapping[str, object] | None = None) -> str:
        """Compose ``<scheme>://<host><path>?<params>``; ``params`` keep their order."""
        url = f"{self.settings.scheme}://{self.host_name}{path}"
        if params:
            url += "?" + urlencode(params)
        return url

    def authorization(self, url: str, *, now: float | None = None) -> str:
        resource = resource_for(url, self.host_name, self.settings.resource_scope)
        token = build_sas_token(
            resource,
            self._key,
            key_name=self.credentials.shared_access_key_name,
            now=now,
            ttl=self.settings.token_ttl,
        )
        return str(token)

    def perform(self, method: str, url: str, body: str = "") -> HubResponse:
        method = method.upper()
        token = self.authorization(url)
        headers = {
            "Authorization": token,
            "Content-Type": "application/json",
            "User-Agent": self.settings.user_agent,
        }
        if method == "DELETE":
            headers["If-Match"] = "*"

        _log.debug("%s %s", method, url)
        _log.debug("Authorization: %s", _redact(token))
        deadline = time.monotonic() + self.settings.timeout
        if not self._slots.acquire(timeout=self.settings.timeout):
            exc = httpx.PoolTimeout(f"no free connection within {self.settings.timeout}s")
            self._fail(method, url, exc)
        try:
            with self._http.stream(
                method,
                url,
                content=body.encode("utf-8"),
                headers=headers,
                timeout=max(deadline - time.monotonic(), 0.001),
            ) as response:
                # drain fully so the connection goes back to the pool
                chunks: list[bytes] = []
                for chunk in response.iter_bytes():
                    chunks.append(chunk)
                    if time.monotonic() > deadline:
                        raise httpx.ReadTimeout(
                            f"response not complete within {self.settings.timeout}s", request=response.request
                        )
            content = b"".join(chunks)
        except httpx.RequestError as exc:
            self._fail(method, url, exc)
        finally:
            self._slots.release()

        status = f"{response.status_code} {response.reason_phrase}"
        _log.debug("%s %s -> %s", method, url, status)
        return HubResponse(body=content.decode(response.encoding or "utf-8", errors="replace"), status=status)

    def _fail(self, method: str, url: str, exc: Exception) -> NoReturn:
        _log.warning("%s %s failed: %s", method, url, exc)
        raise HubTransportError(f"{method} {url} failed: {exc}", method=method, url=url) from exc

    # ------------------------------------------------------------------
    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "IotHubHttpClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


__all__ = ["HubResponse", "IotHubHttpClient"]
