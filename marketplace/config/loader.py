"""
Configuration loader for the marketplace core.
Loads and validates settings from settings.yaml.
"""

import os
import yaml
from typing import TypedDict, Optional
from pathlib import Path

from marketplace.constants.collections import BATCH_FETCH_LIMIT


class BatchFetchConfig(TypedDict, total=False):
    chunk_size: int
    max_workers: int


class TransactionsConfig(TypedDict, total=False):
    max_attempts: int


class LoggingConfig(TypedDict, total=False):
    level: str


class AppConfig(TypedDict, total=False):
    batch_fetch: BatchFetchConfig
    transactions: TransactionsConfig
    logging: LoggingConfig


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _validate_config(config: dict) -> None:
    """
    Validate configuration values.

    Raises:
        ConfigValidationError: If validation fails
    """
    batch_fetch = config.get("batch_fetch") or {}
    if not isinstance(batch_fetch, dict):
        raise ConfigValidationError("batch_fetch must be a mapping")

    if "chunk_size" in batch_fetch:
        chunk_size = batch_fetch["chunk_size"]
        if not isinstance(chunk_size, int) or isinstance(chunk_size, bool) or not 1 <= chunk_size <= BATCH_FETCH_LIMIT:
            raise ConfigValidationError(f"batch_fetch.chunk_size must be an integer between 1 and {BATCH_FETCH_LIMIT}")

    if "max_workers" in batch_fetch:
        max_workers = batch_fetch["max_workers"]
        if not isinstance(max_workers, int) or isinstance(max_workers, bool) or max_workers < 1:
            raise ConfigValidationError("batch_fetch.max_workers must be an integer >= 1")

    transactions = config.get("transactions") or {}
    if not isinstance(transactions, dict):
        raise ConfigValidationError("transactions must be a mapping")

    if "max_attempts" in transactions:
        max_attempts = transactions["max_attempts"]
        if not isinstance(max_attempts, int) or isinstance(max_attempts, bool) or max_attempts < 1:
            raise ConfigValidationError("transactions.max_attempts must be an integer >= 1")

    logging_config = config.get("logging") or {}
    if "level" in logging_config:
        level = logging_config["level"]
        if not isinstance(level, str) or level.upper() not in _LOG_LEVELS:
            raise ConfigValidationError(f"logging.level must be one of {', '.join(_LOG_LEVELS)}")


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load and validate application configuration from settings.yaml.

    Args:
        config_path: Optional path to config file. If None, uses MARKETPLACE_SETTINGS
            or the settings.yaml shipped next to this module.

    Returns:
        Validated configuration dictionary

    Raises:
        ConfigValidationError: If configuration is invalid
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML parsing fails
    """
    if config_path is None:
        config_path = os.getenv("MARKETPLACE_SETTINGS") or Path(__file__).parent / "settings.yaml"

    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse YAML configuration: {e}")

    if config is None:
        config = {}

    if not isinstance(config, dict):
        raise ConfigValidationError("Configuration must be a YAML dictionary")

    _validate_config(config)

    return config


def get_batch_chunk_size(config: AppConfig) -> int:
    """
    Get the number of ids per batched read.

    Args:
        config: Application configuration

    Returns:
        Chunk size (default: 10)
    """
    return (config.get("batch_fetch") or {}).get("chunk_size", BATCH_FETCH_LIMIT)


def get_batch_max_workers(config: AppConfig) -> int:
    """
    Get the number of group reads a single fetch may run concurrently.

    Args:
        config: Application configuration

    Returns:
        Worker count (default: 4)
    """
    return (config.get("batch_fetch") or {}).get("max_workers", 4)


def get_transaction_max_attempts(config: AppConfig) -> int:
    """
    Get the attempts the Firestore client makes for one transaction.

    Args:
        config: Application configuration

    Returns:
        Attempt count (default: 5)
    """
    return (config.get("transactions") or {}).get("max_attempts", 5)


def get_log_level(config: AppConfig) -> str:
    """
    Get the configured log level name.

    Args:
        config: Application configuration

    Returns:
        Level name (default: "INFO")
    """
    return (config.get("logging") or {}).get("level", "INFO").upper()
