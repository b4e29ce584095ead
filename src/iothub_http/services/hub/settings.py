"""Client configuration.

Defaults come from :mod:`iothub_http.config.const`. A YAML file may override
them and ``IOTHUB_*`` environment variables override both::

    api_version: "2016-11-14"
    timeout: 10
    max_idle_connections: 100
    token_ttl: 3600
    resource_scope: host
"""
from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping
import os

import yaml

from iothub_http.config import const

from .errors import HubConfigError


@dataclass(frozen=True, slots=True)
class HubClientSettings:
    api_version: str = const.API_VERSION
    timeout: float = const.REQUEST_TIMEOUT
    max_idle_connections: int = const.MAX_IDLE_CONNECTIONS
    token_ttl: int = const.TOKEN_TTL
    resource_scope: str = const.RESOURCE_SCOPE_HOST
    user_agent: str = const.USER_AGENT
    scheme: str = "https"

    def __post_init__(self) -> None:
        if not self.api_version:
            raise HubConfigError("api_version must not be empty")
        if self.timeout <= 0:
            raise HubConfigError(f"timeout must be positive, got {self.timeout}")
        if self.max_idle_connections < 1:
            raise HubConfigError(f"max_idle_connections must be at least 1, got {self.max_idle_connections}")
        if self.token_ttl <= 0:
            raise HubConfigError(f"token_ttl must be positive, got {self.token_ttl}")
        if self.resource_scope not in const.RESOURCE_SCOPES:
            raise HubConfigError(f"resource_scope must be one of {', '.join(const.RESOURCE_SCOPES)}, got {self.resource_scope!r}")
        if self.scheme not in ("https", "http"):
            raise HubConfigError(f"unsupported scheme: {self.scheme!r}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "HubClientSettings":
        return cls()._merged(data)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "HubClientSettings":
        return cls()._merged(_env_values(os.environ if environ is None else environ))

    def _merged(self, data: Mapping[str, Any]) -> "HubClientSettings":
        changes: dict[str, Any] = {}
        for f in fields(self):
            if f.name not in data or data[f.name] is None:
                continue
            raw = data[f.name]
            kind = type(getattr(self, f.name))
            if kind is int and isinstance(raw, float) and not raw.is_integer():
                raise HubConfigError(f"{f.name} must be a whole number, got {raw!r}")
            try:
                changes[f.name] = kind(raw)
            except (TypeError, ValueError) as exc:
                raise HubConfigError(f"invalid value for {f.name}: {raw!r}") from exc
        return replace(self, **changes)


def _env_values(environ: Mapping[str, str]) -> dict[str, str]:
    values: dict[str, str] = {}
    for f in fields(HubClientSettings):
        raw = environ.get(f"{const.ENV_PREFIX}{f.name.upper()}")
        if raw:
            values[f.name] = raw
    return values


def load_settings(path: str | Path | None = None, *, environ: Mapping[str, str] | None = None) -> HubClientSettings:
    """Build settings from an optional YAML file, then apply environment overrides."""
    settings = HubClientSettings()
    if path is not None:
        p = Path(path).expanduser()
        try:
            data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
        except OSError as exc:
            raise HubConfigError(f"cannot read settings file {p}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise HubConfigError(f"failed to parse {p}: {exc}") from exc
        if not isinstance(data, Mapping):
            raise HubConfigError(f"{p} must contain a mapping")
        settings = settings._merged(data)
    return settings._merged(_env_values(os.environ if environ is None else environ))


__all__ = ["HubClientSettings", "load_settings"]
