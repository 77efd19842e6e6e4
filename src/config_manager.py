# --- START OF FILE config_manager.py ---

import json
import os
import sys

import paths


def load_config(config_path: str | None = None) -> dict:
    """Loads the configuration from the JSON file."""
    config_path = config_path or paths.USER_CONFIG_FILE_PATH
    if not os.path.exists(config_path):
        return {}
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        print(f"CONFIG: Error loading config file '{config_path}': {e}. Using defaults.", file=sys.stderr)
        return {}
    if not isinstance(config, dict):
        print(f"CONFIG: Warning: Config file '{config_path}' does not contain a JSON object. Using defaults.", file=sys.stderr)
        return {}
    return config


def save_config(config: dict, config_path: str | None = None):
    """Saves the configuration dictionary to the JSON file."""
    config_path = config_path or paths.USER_CONFIG_FILE_PATH
    try:
        os.makedirs(os.path.dirname(config_path), exist_ok=True)
        with open(config_path, 'w', encoding='utf-8') as f:
            json.dump(config, f, indent=4)
    except OSError as e:
        print(f"CONFIG: Error saving config file '{config_path}': {e}", file=sys.stderr)


# --- Setting accessors with defaults ---
_config_cache = None


def _get_cached_config() -> dict:
    global _config_cache
    if _config_cache is None:
        _config_cache = load_config()
    return _config_cache


def reload_config():
    """Drops the cached config so the next access re-reads the file."""
    global _config_cache
    _config_cache = None


def get_setting(key: str, default=None):
    """Gets a specific setting from the config, returning a default if not found."""
    return _get_cached_config().get(key, default)


def set_setting(key: str, value):
    """Sets a specific setting and saves the entire config."""
    global _config_cache
    config = _get_cached_config()
    config[key] = value
    save_config(config)
    _config_cache = config

# --- END OF FILE config_manager.py ---
