"""
Configuration persistence for snapbrowse settings.

Stores user preferences like the default repository path so they survive
across sessions.
"""
from __future__ import annotations
import json
import os
from pathlib import Path
from typing import Dict, Any, Optional


def get_config_dir() -> Path:
    """Get the user configuration directory for snapbrowse"""
    if os.name == 'nt':  # Windows
        config_base = Path(os.environ.get('APPDATA', Path.home() / 'AppData' / 'Roaming'))
    else:  # Unix-like (Linux, macOS)
        config_base = Path(os.environ.get('XDG_CONFIG_HOME', Path.home() / '.config'))

    config_dir = config_base / 'snapbrowse'
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_file() -> Path:
    """Get the configuration file path"""
    return get_config_dir() / 'config.json'


def get_log_file() -> Path:
    """Default log destination while the TUI owns the terminal"""
    return get_config_dir() / 'snapbrowse.log'


def load_config() -> Dict[str, Any]:
    """Load configuration from file, returning empty dict if not found or invalid"""
    config_file = get_config_file()
    if not config_file.exists():
        return {}

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError, UnicodeDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(config: Dict[str, Any]) -> bool:
    """Save configuration to file, returning True on success"""
    try:
        config_file = get_config_file()
        with open(config_file, 'w', encoding='utf-8') as f:
            json.dump(config, f, indent=2)
        return True
    except (OSError, UnicodeEncodeError):
        return False


def get_repository_path() -> Optional[str]:
    """Get the stored repository path if it still points to a repository"""
    repo = load_config().get('repository')
    if repo and (Path(repo) / 'config.json').exists():
        return repo
    return None


def save_repository_path(repo: str) -> bool:
    """Remember a repository as the default for later runs"""
    if not repo or not (Path(repo) / 'config.json').exists():
        return False
    config = load_config()
    config['repository'] = str(Path(repo).resolve())
    return save_config(config)


def clear_repository_path() -> bool:
    """Clear the saved repository path from config"""
    config = load_config()
    if 'repository' in config:
        config.pop('repository', None)
        return save_config(config)
    return True


def get_numeric_ids() -> bool:
    """Whether owners are shown as numeric ids by default"""
    return bool(load_config().get('numeric_ids', False))


def get_log_level() -> str:
    """Get stored log level, default to WARNING"""
    return str(load_config().get('log_level', 'WARNING')).upper()


def get_config_summary() -> Dict[str, Any]:
    """Get a summary of current configuration for display purposes"""
    repo = get_repository_path()

    return {
        'config_file': str(get_config_file()),
        'config_exists': get_config_file().exists(),
        'has_repository': repo is not None,
        'repository': repo,
        'numeric_ids': get_numeric_ids(),
        'log_level': get_log_level(),
    }
