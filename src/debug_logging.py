"""
Logging helpers for zfsflow.

Every module logs through log() with a short prefix naming the component:

    log("RUNNER", "message")                    # INFO level, always printed
    log("TRANSFER", "verbose details", "DEBUG") # Only printed with --debug
    log("CORE", "error occurred", "ERROR")

Output goes to stderr so it never mixes with data written to stdout
(for example a send stream redirected into a file).
"""

import sys

_debug_enabled = False


def set_debug_mode(enabled: bool) -> None:
    """Enable or disable debug logging globally."""
    global _debug_enabled
    _debug_enabled = enabled


def is_debug_enabled() -> bool:
    return _debug_enabled


def log(prefix: str, message: str, level: str = "INFO") -> None:
    """
    Log a message with the specified level.

    Args:
        prefix: Component prefix (e.g., "RUNNER", "TRANSFER", "WEB_API")
        message: The log message
        level: DEBUG, INFO, WARNING, ERROR. DEBUG messages are dropped
               unless debug mode is enabled.
    """
    if level == "DEBUG" and not _debug_enabled:
        return
    txt = f"{prefix} [{level}]: {message}" if prefix else f"[{level}]: {message}"
    print(txt, file=sys.stderr)


def log_debug(prefix: str, message: str) -> None:
    log(prefix, message, "DEBUG")


def log_info(prefix: str, message: str) -> None:
    log(prefix, message, "INFO")


def log_warning(prefix: str, message: str) -> None:
    log(prefix, message, "WARNING")


def log_error(prefix: str, message: str) -> None:
    log(prefix, message, "ERROR")
