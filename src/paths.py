# Path configuration module for zfsflow
# This module centralizes all path logic for the application

import os
import platform
import shutil
from pathlib import Path

# User configuration paths (per-user, in home directory)
USER_CONFIG_DIR = Path.home() / ".config" / "zfsflow"
USER_CONFIG_FILE_PATH = str(USER_CONFIG_DIR / "config.json")


def find_executable(name: str, additional_paths: list[str] | None = None) -> str | None:
    """Find an executable by name.

    Tries PATH first, then the sbin/bin directories where ZFS tools are
    commonly installed on the current platform, then any additional_paths.

    Returns:
        Absolute path if found, otherwise None
    """
    path = shutil.which(name)
    if path:
        return path

    system = platform.system()
    if system == 'Darwin':
        search_dirs = ['/usr/local/zfs/bin', '/usr/local/bin', '/usr/local/sbin', '/opt/homebrew/bin', '/usr/sbin', '/sbin']
    elif 'BSD' in system:
        search_dirs = ['/sbin', '/usr/sbin', '/usr/local/sbin', '/usr/local/bin']
    else:
        search_dirs = ['/usr/sbin', '/sbin', '/usr/local/sbin', '/usr/bin', '/bin', '/usr/local/bin']

    if additional_paths:
        search_dirs = list(additional_paths) + search_dirs

    for directory in search_dirs:
        candidate = os.path.join(directory, name)
        if os.path.isfile(candidate) and os.access(candidate, os.X_OK):
            return candidate
    return None
