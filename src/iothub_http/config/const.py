# src/iothub_http/config/const.py
from __future__ import annotations

# Hard defaults; override per client through HubClientSettings
API_VERSION: str = "2016-11-14"

REQUEST_TIMEOUT: float = 10.0
MAX_IDLE_CONNECTIONS: int = 100

TOKEN_TTL_HOUR: int = 3600
TOKEN_TTL_YEAR: int = 365 * 24 * 3600
TOKEN_TTL: int = TOKEN_TTL_HOUR

# "host" signs the bare host name, "path" signs host + request path
RESOURCE_SCOPE_HOST: str = "host"
RESOURCE_SCOPE_PATH: str = "path"
RESOURCE_SCOPES: tuple[str, ...] = (RESOURCE_SCOPE_HOST, RESOURCE_SCOPE_PATH)

USER_AGENT: str = "iothub-http/0.1.0"

CONNECTION_STRING_ENV: str = "CONNECTION_STRING"
ENV_PREFIX: str = "IOTHUB_"
