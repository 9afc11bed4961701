"""Client configuration for pyfeeding."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pyfeeding._constants import (
    DEFAULT_MQTT_TOPIC_PREFIX,
    DEFAULT_RESET_HOUR,
    HISTORY_LIMIT,
    HISTORY_TABLE,
    STATE_TABLE,
)
from pyfeeding.exceptions import FeedingConfigError

BACKENDS: frozenset[str] = frozenset({"rest", "file", "memory"})


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env: Mapping[str, str], key: str, cast: type[Any]) -> Any:
    raw = env.get(key)
    if raw is None:
        return None
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise FeedingConfigError(f"{key} must be a {cast.__name__}, got {raw!r}") from exc


@dataclasses.dataclass(frozen=True)
class FeedingConfig:
    """Client configuration.

    Parameters
    ----------
    backend : str
        Where state and history live: ``"rest"`` (PostgREST tables),
        ``"file"`` (JSON files under *data_dir*) or ``"memory"``.
    base_url : str or None
        Project URL of the REST datastore (e.g. a Supabase project).
    api_key : str or None
        API key sent as ``apikey`` and bearer token.
    state_table : str
        Table holding one feeding state row per date.
    history_table : str
        Table holding feeding records.
    data_dir : str or None
        Directory for the file backend.
    owner : str or None
        Optional user id stamped on written rows.
    reset_hour : int
        Local hour (0-23) from which a previous day's state is archived
        and replaced by a blank one.
    history_limit : int
        Number of history records kept, newest first.
    time_zone : str or None
        IANA time zone used to compute the local day. ``None`` uses the
        host's local time zone.
    request_timeout : float
        Total timeout in seconds for a single REST request.
    mqtt_enabled : bool
        Subscribe to the MQTT change feed.
    mqtt_host, mqtt_port, mqtt_username, mqtt_password : broker settings
    mqtt_topic_prefix : str
        Topics ``{prefix}/state`` and ``{prefix}/history`` are subscribed.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    mqtt_tls : bool
        Connect to the broker over TLS.
    """

    backend: str = "memory"
    base_url: str | None = None
    api_key: str | None = None
    state_table: str = STATE_TABLE
    history_table: str = HISTORY_TABLE
    data_dir: str | None = None
    owner: str | None = None
    reset_hour: int = DEFAULT_RESET_HOUR
    history_limit: int = HISTORY_LIMIT
    time_zone: str | None = None
    request_timeout: float = 10.0
    mqtt_enabled: bool = False
    mqtt_host: str | None = None
    mqtt_port: int = 1883
    mqtt_username: str | None = None
    mqtt_password: str | None = None
    mqtt_topic_prefix: str = DEFAULT_MQTT_TOPIC_PREFIX
    mqtt_keepalive: int = 120
    mqtt_tls: bool = False

    def validate(self) -> None:
        """Raise :class:`FeedingConfigError` if the configuration is unusable."""
        if self.backend not in BACKENDS:
            raise FeedingConfigError(f"Unknown backend {self.backend!r}; expected one of {sorted(BACKENDS)}")
        if not 0 <= self.reset_hour <= 23:
            raise FeedingConfigError(f"reset_hour must be between 0 and 23, got {self.reset_hour}")
        if self.history_limit <= 0:
            raise FeedingConfigError(f"history_limit must be positive, got {self.history_limit}")
        if self.backend == "rest" and not (self.base_url and self.api_key):
            raise FeedingConfigError("The rest backend requires base_url and api_key")
        if self.backend == "file" and not self.data_dir:
            raise FeedingConfigError("The file backend requires data_dir")
        if self.time_zone is not None:
            try:
                ZoneInfo(self.time_zone)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise FeedingConfigError(f"Unknown time zone {self.time_zone!r}") from exc
        if self.mqtt_enabled and not self.mqtt_host:
            raise FeedingConfigError("mqtt_enabled requires mqtt_host")

    @classmethod
    def from_env(cls, **overrides: Any) -> FeedingConfig:
        """Create configuration from ``FEEDING_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "FEEDING_BACKEND": "backend",
            "FEEDING_BASE_URL": "base_url",
            "FEEDING_API_KEY": "api_key",
            "FEEDING_STATE_TABLE": "state_table",
            "FEEDING_HISTORY_TABLE": "history_table",
            "FEEDING_DATA_DIR": "data_dir",
            "FEEDING_OWNER": "owner",
            "FEEDING_TIME_ZONE": "time_zone",
            "FEEDING_MQTT_HOST": "mqtt_host",
            "FEEDING_MQTT_USERNAME": "mqtt_username",
            "FEEDING_MQTT_PASSWORD": "mqtt_password",
            "FEEDING_MQTT_TOPIC_PREFIX": "mqtt_topic_prefix",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_NUMERIC_MAP: dict[str, tuple[str, type[Any]]] = {
            "FEEDING_RESET_HOUR": ("reset_hour", int),
            "FEEDING_HISTORY_LIMIT": ("history_limit", int),
            "FEEDING_REQUEST_TIMEOUT": ("request_timeout", float),
            "FEEDING_MQTT_PORT": ("mqtt_port", int),
            "FEEDING_MQTT_KEEPALIVE": ("mqtt_keepalive", int),
        }
        for env_key, (field_name, cast) in _ENV_NUMERIC_MAP.items():
            if field_name in overrides:
                continue
            value = _env_number(env, env_key, cast)
            if value is not None:
                config_kwargs[field_name] = value

        if "mqtt_enabled" not in overrides:
            config_kwargs["mqtt_enabled"] = _env_bool(env.get("FEEDING_MQTT_ENABLED"), False)
        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("FEEDING_MQTT_TLS"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
