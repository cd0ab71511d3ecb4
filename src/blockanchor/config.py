"""Anchoring configuration.

The configuration is immutable for the lifetime of the process. It can be
built directly, read from the environment (optionally seeded from a
``.env`` file), or read from a JSON file.

Environment variables:
    ANCHOR_ENABLED        — "true"/"false" (default: false)
    ANCHOR_PERIOD         — anchor every Nth block, N >= 1 (default: 1)
    ANCHOR_URL            — anchoring service endpoint
    ANCHOR_XKRN           — route key sent in the X-Krn header
    ANCHOR_USER           — basic-auth credential ID
    ANCHOR_PASSWORD       — basic-auth credential secret
    ANCHOR_OPERATOR       — operator address (0x-prefixed, 20 bytes)
    ANCHOR_TIMEOUT        — request timeout in seconds, "none" disables (default: 30)
    ANCHOR_STRICT_DECODE  — treat undecodable replies as failures (default: false)
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from web3 import Web3

from blockanchor.errors import ConfigError

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
DEFAULT_TIMEOUT_SECONDS = 30.0
ENV_PREFIX = "ANCHOR_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class AnchorConfig:
    """Settings for anchoring blocks to the external service."""
    enabled: bool = False
    period: int = 1
    url: str = ""
    xkrn: str = ""
    user: str = ""
    password: str = ""
    operator: str = ZERO_ADDRESS
    timeout: Optional[float] = DEFAULT_TIMEOUT_SECONDS
    strict_decode: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.period, bool) or not isinstance(self.period, int):
            raise ConfigError(f"Anchor period must be an integer, got {self.period!r}")
        if self.period < 1:
            raise ConfigError(f"Anchor period must be >= 1, got {self.period}")
        if not Web3.is_address(self.operator):
            raise ConfigError(f"Invalid operator address: {self.operator!r}")
        # Normalise to lowercase 0x hex (frozen, so bypass __setattr__)
        object.__setattr__(self, "operator", Web3.to_checksum_address(self.operator).lower())
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigError(f"Timeout must be positive, got {self.timeout}")
        if self.enabled and not self.url:
            raise ConfigError("Anchoring is enabled but no service URL is set")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> AnchorConfig:
        """Build a config from loosely typed values (strings allowed)."""
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")

        kwargs: dict[str, Any] = {}
        for key, value in values.items():
            if key in ("enabled", "strict_decode"):
                kwargs[key] = _parse_bool(key, value)
            elif key == "period":
                kwargs[key] = _parse_int(key, value)
            elif key == "timeout":
                kwargs[key] = _parse_timeout(value)
            else:
                kwargs[key] = str(value)
        return cls(**kwargs)

    @classmethod
    def from_env(
        cls,
        env_file: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> AnchorConfig:
        """Read the config from ANCHOR_* environment variables.

        If ``env_file`` is given it is loaded first with python-dotenv;
        variables already present in the environment take precedence.
        """
        if env_file is not None:
            load_dotenv(env_file)
        env = os.environ if environ is None else environ

        values: dict[str, Any] = {}
        for f in fields(cls):
            var = ENV_PREFIX + f.name.upper()
            if var in env:
                values[f.name] = env[var]
        return cls.from_mapping(values)

    @classmethod
    def from_file(cls, path: Path) -> AnchorConfig:
        """Read the config from a JSON object file."""
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")
        return cls.from_mapping(data)

    def redacted(self) -> dict[str, Any]:
        """Config as a dict with the credential secret masked."""
        return {
            "enabled": self.enabled,
            "period": self.period,
            "url": self.url,
            "xkrn": self.xkrn,
            "user": self.user,
            "password": "***" if self.password else "",
            "operator": self.operator,
            "timeout": self.timeout,
            "strict_decode": self.strict_decode,
        }


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"{key} must be a boolean, got {value!r}")


def _parse_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be an integer, got {value!r}") from e


def _parse_timeout(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() in ("", "none"):
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"timeout must be a number, got {value!r}") from e
