"""Config schema and accessor."""

from __future__ import annotations

import os
from typing import Any

from loguru import logger

from roombus.core.constants import DEFAULT_DELIMITER, DEFAULT_PREFIX, ROOT_NAMESPACE
from roombus.core.errors import ConfigurationError
from roombus.gateway.channels import validate_delimiter

DEFAULT_NATS_SERVERS = ("nats://localhost:4222",)

# Env keys that override config (loaded once per reload)
_ENV_OVERRIDE_KEYS = (
    "ROOMBUS_NATS_URL",
    "ROOMBUS_PREFIX",
    "ROOMBUS_DELIMITER",
)


def _load_env_overrides() -> dict[str, str]:
    return {k: os.environ.get(k, "") for k in _ENV_OVERRIDE_KEYS}


class Config:
    """Config accessor with attribute-style access for nested keys."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data = data or {}
        self._env: dict[str, str] = _load_env_overrides()

    def reload(self, data: dict[str, Any], *, validate: bool = True) -> None:
        """Replace config data and re-read env overrides."""
        self._data = data or {}
        self._env = _load_env_overrides()
        if validate:
            self._validate()
        logger.debug("Config reloaded: {} namespaces", len(self.namespaces))

    def _validate(self) -> None:
        """Validate config structure; raise ConfigurationError on failure."""
        nats_cfg = self._data.get("nats")
        if nats_cfg is not None and not isinstance(nats_cfg, dict):
            raise ConfigurationError(
                "nats must be a mapping",
                code="invalid_nats",
                details={"type": type(nats_cfg).__name__},
            )
        servers = self.get("nats.servers")
        if servers is not None and not isinstance(servers, (list, str)):
            raise ConfigurationError(
                "nats.servers must be a list or a comma-separated string",
                code="invalid_servers",
                details={"type": type(servers).__name__},
            )
        if not self.nats_servers:
            raise ConfigurationError("no NATS servers configured", code="missing_servers")
        try:
            attempts = self.nats_connect_attempts
            timeout = self.nats_connect_timeout
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                "nats.connect_attempts / nats.connect_timeout must be numbers",
                code="invalid_connect_settings",
                original_error=exc,
            ) from exc
        if attempts < 1 or timeout <= 0:
            raise ConfigurationError(
                "nats.connect_attempts must be >= 1 and nats.connect_timeout > 0",
                code="invalid_connect_settings",
                details={"attempts": attempts, "timeout": timeout},
            )
        if not self.prefix:
            raise ConfigurationError("prefix must not be empty", code="invalid_prefix")
        try:
            validate_delimiter(self.delimiter)
        except ValueError as exc:
            raise ConfigurationError(
                str(exc),
                code="invalid_delimiter",
                details={"delimiter": self.delimiter},
                original_error=exc,
            ) from exc
        namespaces = self._data.get("namespaces")
        if namespaces is not None and not isinstance(namespaces, list):
            raise ConfigurationError(
                "namespaces must be a list",
                code="invalid_namespaces",
                details={"type": type(namespaces).__name__},
            )
        for i, nsp in enumerate(self.namespaces):
            if not isinstance(nsp, str) or not nsp.startswith("/"):
                raise ConfigurationError(
                    f"namespaces[{i}] must be a string starting with '/'",
                    code="invalid_namespace",
                    details={"index": i, "value": nsp},
                )

    @property
    def raw(self) -> dict[str, Any]:
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Get value by dot-separated path (e.g. 'nats.servers')."""
        parts = key.split(".")
        obj: Any = self._data
        for part in parts:
            if isinstance(obj, dict) and part in obj:
                obj = obj[part]
            else:
                return default
        return obj

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __contains__(self, key: str) -> bool:
        return key in self._data

    @property
    def nats_servers(self) -> list[str]:
        """NATS server URLs. ROOMBUS_NATS_URL (comma-separated) wins over the file."""
        raw: Any = self._env.get("ROOMBUS_NATS_URL") or self.get("nats.servers")
        if raw is None:
            return list(DEFAULT_NATS_SERVERS)
        if isinstance(raw, str):
            raw = raw.split(",")
        return [str(s).strip() for s in raw if str(s).strip()]

    @property
    def nats_name(self) -> str:
        """Client name reported to the NATS server."""
        return str(self.get("nats.name", "roombus"))

    @property
    def nats_connect_timeout(self) -> float:
        return float(self.get("nats.connect_timeout", 2.0))

    @property
    def nats_connect_attempts(self) -> int:
        return int(self.get("nats.connect_attempts", 3))

    @property
    def prefix(self) -> str:
        """Channel-name prefix."""
        return self._env.get("ROOMBUS_PREFIX") or str(self._data.get("prefix", DEFAULT_PREFIX))

    @property
    def delimiter(self) -> str:
        return self._env.get("ROOMBUS_DELIMITER") or str(
            self._data.get("delimiter", DEFAULT_DELIMITER)
        )

    @property
    def namespaces(self) -> list[str]:
        """Namespaces to serve (default: root only)."""
        nsps = self._data.get("namespaces")
        return nsps if isinstance(nsps, list) and nsps else [ROOT_NAMESPACE]


# Global config instance (set by __main__)
cfg: Config = Config({})
