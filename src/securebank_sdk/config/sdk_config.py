"""
SDK configuration management

Loads client settings from dictionaries, JSON documents, files or
``SECUREBANK_`` environment variables into validated dataclasses.
"""

import os
import json
import logging
from typing import Dict, Optional, Any, Union, Mapping, Callable
from dataclasses import dataclass, field, fields
from pathlib import Path

from ..exceptions import ConfigurationError, ValidationError
from ..envelope import (
    EnvelopeCodec,
    SensitivityPolicy,
    DEFAULT_POLICY,
    REPLAY_WINDOW_MS,
    load_key,
)
from ..http_clients import HttpClientConfig, SecureBankHttpClient

ENV_PREFIX = "SECUREBANK_"
SDK_LOGGER_NAME = "securebank_sdk"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "WARNING"
    security_level: str = "WARNING"

    def __post_init__(self):
        self.level = self.level.upper()
        self.security_level = self.security_level.upper()
        for value in (self.level, self.security_level):
            if value not in VALID_LOG_LEVELS:
                raise ConfigurationError(f"Invalid log level: {value}", "INVALID_LOG_LEVEL")

    def apply(self) -> None:
        """Set SDK logger levels; handlers stay with the host application"""
        logging.getLogger(SDK_LOGGER_NAME).setLevel(self.level)
        logging.getLogger(f"{SDK_LOGGER_NAME}.security").setLevel(self.security_level)


@dataclass
class SdkConfig:
    """Complete SDK configuration"""
    http: HttpClientConfig
    encryption_key: Union[str, bytes] = field(repr=False)
    replay_window_ms: int = REPLAY_WINDOW_MS
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    unify_upload_policy: bool = False

    def __post_init__(self):
        try:
            self.encryption_key = load_key(self.encryption_key)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid encryption key: {e}", "INVALID_KEY") from e

        if self.replay_window_ms <= 0:
            raise ConfigurationError("replay_window_ms must be positive", "INVALID_REPLAY_WINDOW")

    @property
    def policy(self) -> SensitivityPolicy:
        """Sensitivity policy selected by this configuration"""
        if self.unify_upload_policy:
            return DEFAULT_POLICY.with_unified_uploads()
        return DEFAULT_POLICY

    def create_codec(self) -> EnvelopeCodec:
        return EnvelopeCodec(self.encryption_key, replay_window_ms=self.replay_window_ms)

    def create_client(self, on_forced_logout: Optional[Callable[[], None]] = None) -> SecureBankHttpClient:
        """
        Build a client from this configuration

        Args:
            on_forced_logout: Called once when a session refresh is rejected

        Returns:
            SecureBankHttpClient: Configured client
        """
        self.logging.apply()
        return SecureBankHttpClient(
            self.http,
            self.create_codec(),
            policy=self.policy,
            on_forced_logout=on_forced_logout
        )


_HTTP_FIELDS = {f.name: f for f in fields(HttpClientConfig)}


def _coerce(name: str, raw: str) -> Any:
    """Convert an environment string to the type of the matching config field"""
    default = _HTTP_FIELDS[name].default
    if isinstance(default, bool):
        lowered = raw.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ConfigurationError(f"Invalid boolean for {name}: {raw}", "INVALID_VALUE")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return raw


def load_config_from_dict(data: Mapping[str, Any]) -> SdkConfig:
    """
    Load configuration from a dictionary

    Expected layout::

        {
            "http": {"base_url": "https://bank.example/api", "timeout": 10},
            "encryption_key": "<64 hex chars or 32 chars>",
            "replay_window_ms": 300000,
            "logging": {"level": "INFO"},
            "unify_upload_policy": false
        }

    Raises:
        ConfigurationError: Missing or invalid settings
    """
    try:
        http_data = dict(data['http'])
        unknown = set(http_data) - set(_HTTP_FIELDS)
        if unknown:
            raise ConfigurationError(
                f"Unknown http settings: {', '.join(sorted(unknown))}",
                "UNKNOWN_SETTING"
            )
        http = HttpClientConfig(**http_data)
        return SdkConfig(
            http=http,
            encryption_key=data['encryption_key'],
            replay_window_ms=int(data.get('replay_window_ms', REPLAY_WINDOW_MS)),
            logging=LoggingConfig(**data.get('logging', {})),
            unify_upload_policy=bool(data.get('unify_upload_policy', False)),
        )
    except KeyError as e:
        raise ConfigurationError(f"Missing required setting: {e}", "MISSING_SETTING") from e
    except ValidationError as e:
        raise ConfigurationError(f"Invalid http settings: {e}", "INVALID_FORMAT") from e
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration format: {e}", "INVALID_FORMAT") from e


def load_config_from_json(json_string: str) -> SdkConfig:
    """Load configuration from JSON string"""
    try:
        data = json.loads(json_string)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Failed to parse configuration JSON: {e}", "PARSE_ERROR") from e
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration JSON must be an object", "INVALID_FORMAT")
    return load_config_from_dict(data)


def load_config_from_file(file_path: Union[str, Path]) -> SdkConfig:
    """Load configuration from a JSON file"""
    try:
        with open(Path(file_path), 'r', encoding='utf-8') as f:
            json_string = f.read()
    except OSError as e:
        raise ConfigurationError(f"Failed to read configuration file: {e}", "FILE_ERROR") from e
    return load_config_from_json(json_string)


def load_config_from_env(environ: Optional[Mapping[str, str]] = None) -> SdkConfig:
    """
    Load configuration from ``SECUREBANK_`` environment variables

    Every ``HttpClientConfig`` field maps to ``SECUREBANK_<FIELD>``
    (``SECUREBANK_BASE_URL``, ``SECUREBANK_TIMEOUT``, ...). The key comes from
    ``SECUREBANK_ENCRYPTION_KEY``; ``SECUREBANK_LOG_LEVEL``,
    ``SECUREBANK_REPLAY_WINDOW_MS`` and ``SECUREBANK_UNIFY_UPLOAD_POLICY`` are
    optional.

    Args:
        environ: Mapping to read instead of ``os.environ``
    """
    env = os.environ if environ is None else environ

    http: Dict[str, Any] = {}
    try:
        for name in _HTTP_FIELDS:
            if name == 'default_headers':
                continue
            raw = env.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None:
                http[name] = _coerce(name, raw)
    except ValueError as e:
        raise ConfigurationError(f"Invalid environment setting: {e}", "INVALID_VALUE") from e

    if 'base_url' not in http:
        raise ConfigurationError(f"{ENV_PREFIX}BASE_URL is not set", "MISSING_SETTING")
    if f"{ENV_PREFIX}ENCRYPTION_KEY" not in env:
        raise ConfigurationError(f"{ENV_PREFIX}ENCRYPTION_KEY is not set", "MISSING_SETTING")

    data: Dict[str, Any] = {
        'http': http,
        'encryption_key': env[f"{ENV_PREFIX}ENCRYPTION_KEY"],
    }
    if f"{ENV_PREFIX}REPLAY_WINDOW_MS" in env:
        data['replay_window_ms'] = env[f"{ENV_PREFIX}REPLAY_WINDOW_MS"]
    if f"{ENV_PREFIX}LOG_LEVEL" in env:
        data['logging'] = {'level': env[f"{ENV_PREFIX}LOG_LEVEL"]}
    if f"{ENV_PREFIX}UNIFY_UPLOAD_POLICY" in env:
        data['unify_upload_policy'] = env[f"{ENV_PREFIX}UNIFY_UPLOAD_POLICY"].strip().lower() in (
            "1", "true", "yes", "on"
        )

    return load_config_from_dict(data)
