"""
Runtime settings for gosbot sessions.

Sources, lowest to highest precedence:
    1. defaults below
    2. a YAML file (``BotSettings.from_yaml``)
    3. GOSBOT_* environment variables (``BotSettings.from_env``)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from gosbot.shared.log import get_logger

logger = get_logger(__name__)

DEFAULT_HOST = "bot.gosuslugi.ru"
DEFAULT_PLATFORM = "epgu_desc"

_ENV_PREFIX = "GOSBOT_"


@dataclass(frozen=True)
class BotSettings:
    service_host: str = DEFAULT_HOST
    init_path: str = "/api/v2/init"
    socket_path: str = "/api/v2/ws/socket.io/?EIO=4&transport=websocket"
    platform: str = DEFAULT_PLATFORM
    request_timeout: Optional[float] = 30.0   # correlated request deadline; None waits forever
    http_timeout: float = 10.0
    open_timeout: float = 10.0
    ping_interval: Optional[float] = None     # server drives keepalive with 2/3 frames
    ping_timeout: Optional[float] = None
    user_agent: str = "gosbot/0.1"

    @property
    def init_url(self) -> str:
        return f"https://{self.service_host}{self.init_path}"

    @property
    def socket_url(self) -> str:
        return f"wss://{self.service_host}{self.socket_path}"

    def merged(self, overrides: Mapping[str, Any]) -> "BotSettings":
        """Return a copy with ``overrides`` applied, coercing strings to field types."""
        known = {f.name: f for f in fields(self)}
        unknown = set(overrides) - set(known)
        if unknown:
            raise ValueError(f"Unknown settings: {sorted(unknown)}")

        values: Dict[str, Any] = {}
        for name, raw in overrides.items():
            values[name] = _coerce(name, raw)
        return replace(self, **values)

    @classmethod
    def from_yaml(cls, path: Path, base: Optional["BotSettings"] = None) -> "BotSettings":
        """Load settings from a YAML mapping; missing file keeps ``base``."""
        base = base or cls()
        path = Path(path)
        if not path.exists():
            logger.info("No settings file at %s; using defaults", path)
            return base

        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a mapping, got {type(data).__name__}")

        logger.debug("Loaded settings from %s", path)
        return base.merged(data)

    @classmethod
    def from_env(cls, base: Optional["BotSettings"] = None,
                 environ: Optional[Mapping[str, str]] = None) -> "BotSettings":
        """Apply GOSBOT_<FIELD> overrides, e.g. GOSBOT_REQUEST_TIMEOUT=5."""
        base = base or cls()
        environ = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            key = _ENV_PREFIX + f.name.upper()
            if key in environ:
                overrides[f.name] = environ[key]
        return base.merged(overrides)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "BotSettings":
        """Defaults, then the YAML file named by ``path`` or GOSBOT_CONFIG, then env."""
        settings = cls()
        config_path = path or os.getenv(_ENV_PREFIX + "CONFIG")
        if config_path:
            settings = cls.from_yaml(Path(config_path), settings)
        return cls.from_env(settings)


def _coerce(name: str, raw: Any) -> Any:
    if not isinstance(raw, str):
        return raw
    if name.endswith(("_timeout", "_interval")):
        if raw.strip().lower() in ("", "none", "null"):
            return None
        try:
            return float(raw)
        except ValueError:
            raise ValueError(f"{name} must be a number, got {raw!r}") from None
    return raw
