"""
Configuration loading and environment variable management.

Key modules:
    - env_loader: Environment variable validation and access
    - loader: YAML configuration loading (settings.yaml)

Usage:
    from marketplace.config.env_loader import get_store_settings
    from marketplace.config.loader import load_app_config, get_batch_chunk_size
"""
