"""Shared configuration and logging helpers."""

from logkv.utils.config import Config, get_config, reset_config
from logkv.utils.logging import configure_logging, get_logger

__all__ = ["Config", "configure_logging", "get_config", "get_logger", "reset_config"]
