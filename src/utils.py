# --- START OF FILE utils.py ---

BINARY_SUFFIXES = ['B', 'KiB', 'MiB', 'GiB', 'TiB', 'PiB', 'EiB', 'ZiB']


def format_size(size_bytes, precision: int = 1):
    """Formats bytes with binary prefixes, e.g. 1536 -> '1.5KiB'."""
    if size_bytes is None or not isinstance(size_bytes, (int, float)) or size_bytes < 0:
        return "-"
    value = float(size_bytes)
    power = 0
    while value >= 1024 and power + 1 < len(BINARY_SUFFIXES):
        value /= 1024.0
        power += 1
    return f"{value:.{precision}f}{BINARY_SUFFIXES[power]}"


def format_percent(done, total):
    """Formats done/total as a percentage string, '-' when total is unknown."""
    if not total or total <= 0:
        return "-"
    return f"{min(100.0, max(0.0, done * 100.0 / total)):.1f}%"

# --- END OF FILE utils.py ---
