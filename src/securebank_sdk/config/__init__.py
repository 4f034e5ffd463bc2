"""
Configuration management for SecureBank Python SDK
"""

from .sdk_config import (
    SdkConfig,
    LoggingConfig,
    ENV_PREFIX,
    load_config_from_dict,
    load_config_from_json,
    load_config_from_file,
    load_config_from_env,
)

__all__ = [
    'SdkConfig',
    'LoggingConfig',
    'ENV_PREFIX',
    'load_config_from_dict',
    'load_config_from_json',
    'load_config_from_file',
    'load_config_from_env',
]
