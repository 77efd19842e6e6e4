# --- START OF FILE constants.py ---

"""
Central location for constants used across the zfsflow modules.
"""

# --- ZFS Output Formats ---
# Columns emitted by 'zfs get all -H -p', in order
ZFS_GET_FIELDS = ['name', 'property', 'value', 'source']

# Dataset types listed by default (snapshots are listed separately)
DEFAULT_LIST_TYPES = 'filesystem,volume'

# Source column values from 'zfs get'
INHERITED_SOURCE_PREFIX = 'inherited from '
NONE_SOURCE = '-'

# Second line of 'zfs send -P' output carries the estimated stream size
SEND_SIZE_MARKER = 'size'

# --- Default Settings ---
# These are fallback values used when config file doesn't have the setting or value is invalid

DEFAULT_ZFS_BINARY = 'zfs'
DEFAULT_USE_SUDO = False
DEFAULT_COMMAND_TIMEOUT = 120  # Timeout for short zfs commands in seconds (send/receive have none)

# --- Thread/Process Timeouts ---
THREAD_JOIN_TIMEOUT = 2.0  # Timeout for joining pump threads after the process exits (seconds)
TERMINATE_TIMEOUT = 5.0    # Timeout to wait for process to terminate after SIGTERM (seconds)
PUMP_CHUNK_SIZE = 1024 * 1024  # Bytes copied per read when pumping send output into a sink

# --- Web API ---
DEFAULT_WEB_HOST = '127.0.0.1'
DEFAULT_WEB_PORT = 5002
WEB_SERVER_THREADS = 8

# --- END OF FILE constants.py ---
