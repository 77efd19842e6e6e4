# --- START OF FILE models.py ---

import datetime
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import constants
import config_manager
from paths import find_executable
from zfs_errors import PropertyEmptyError, PropertyNoneError, PropertyNotBoolError, ZfsParsingError


class PropertySource(enum.Enum):
    LOCAL = "local"
    DEFAULT = "default"
    INHERITED = "inherited"
    RECEIVED = "received"
    TEMPORARY = "temporary"
    NONE = "-"  # internal/read-only property with no external source


class DatasetType(enum.Enum):
    FILESYSTEM = "filesystem"
    VOLUME = "volume"
    SNAPSHOT = "snapshot"
    BOOKMARK = "bookmark"


class DestroyScope(enum.Enum):
    NONE = ""
    LOCAL = "-r"   # direct descendents only
    GLOBAL = "-R"  # any dependents, including clones outside the hierarchy


@dataclass(frozen=True)
class Property:
    name: str
    value: str = ""  # "" means not set, "none" is zfs's explicit empty value
    source: PropertySource = PropertySource.NONE
    inherited_from: Optional[str] = None

    def is_read_only(self) -> bool:
        return self.source is PropertySource.NONE

    def is_default(self) -> bool:
        return self.source is PropertySource.DEFAULT

    def is_none(self) -> bool:
        return self.value == "none"

    def is_empty(self) -> bool:
        return self.value == ""

    def as_bool(self) -> bool:
        if self.value == "on":
            return True
        if self.value == "off":
            return False
        raise PropertyNotBoolError(self.name, self.value)

    def as_int(self) -> int:
        if self.is_none():
            raise PropertyNoneError(self.name)
        if self.is_empty():
            raise PropertyEmptyError(self.name)
        try:
            return int(self.value)
        except ValueError as e:
            raise ZfsParsingError(f"Can't convert value of '{self.name}' to integer: {e}", raw_line=self.value) from e

    def as_size(self) -> int:
        """Byte count; only meaningful for values fetched with 'zfs get -p'."""
        return self.as_int()

    def as_datetime(self) -> datetime.datetime:
        """Interprets the value as epoch seconds (e.g. 'creation' with -p)."""
        return datetime.datetime.fromtimestamp(self.as_int())


@dataclass(frozen=True)
class Dataset:
    """One dataset (filesystem, volume, snapshot or clone) with all its properties."""
    name: str
    properties: Dict[str, Property] = field(default_factory=dict)

    def get_property(self, name: str) -> Property:
        """Missing properties come back empty instead of raising, see Property.is_empty()."""
        return self.properties.get(name, Property(name=name))

    @property
    def pool(self) -> str:
        return self.name.split('/', 1)[0].split('@', 1)[0]

    @property
    def last_path(self) -> str:
        return self.name.split('@', 1)[0].rsplit('/', 1)[-1]

    @property
    def snapshot_name(self) -> Optional[str]:
        if '@' not in self.name:
            return None
        return self.name.split('@', 1)[1]

    def get_type(self) -> Optional[DatasetType]:
        value = self.get_property("type").value
        try:
            return DatasetType(value)
        except ValueError:
            return None

    def is_filesystem(self) -> bool:
        return self.get_type() is DatasetType.FILESYSTEM

    def is_snapshot(self) -> bool:
        return self.get_type() is DatasetType.SNAPSHOT

    def is_clone(self) -> bool:
        origin = self.get_property("origin").value
        return origin not in ("", constants.NONE_SOURCE)

    def used_size(self) -> int:
        return self.get_property("used").as_size()

    def available_size(self) -> int:
        return self.get_property("available").as_size()

    def referenced_size(self) -> int:
        return self.get_property("referenced").as_size()

    def mountpoint(self) -> Property:
        return self.get_property("mountpoint")


@dataclass(frozen=True)
class ProgressReport:
    timestamp: str      # local time on the sending host, e.g. "15:39:14"
    bytes_sent: int
    current_unit: str   # snapshot currently being sent


@dataclass(frozen=True)
class TransferProgress:
    """
    One progress event of a running send.

    The first event of a transfer carries only the header (has_report is
    False); every later one carries a report.
    """
    kind: str = ""
    source_name: str = ""
    source_size: int = 0
    estimated_size: int = 0
    has_report: bool = False
    report: Optional[ProgressReport] = None
    error: Optional[Exception] = None
    base_name: Optional[str] = None


@dataclass
class ProgressSummary:
    events: int = 0
    unparsed_lines: List[str] = field(default_factory=list)

    @property
    def leftover(self) -> str:
        return "\n".join(self.unparsed_lines)


@dataclass(frozen=True)
class SendOptions:
    incremental: Optional[str] = None     # base snapshot for an incremental stream
    include_intermediary: bool = False    # -I instead of -i
    replication_stream: bool = False      # -R
    large_blocks: bool = False            # -L
    embedded: bool = False                # -e
    compressed: bool = False              # -c
    include_properties: bool = False      # -p


@dataclass(frozen=True)
class ReceiveOptions:
    force_rollback: bool = False          # -F
    resumable: bool = False               # -s
    not_mount: bool = False               # -u
    discard_first: bool = False           # -d
    discard_all_but_last: bool = False    # -e
    origin: Optional[str] = None          # -o origin=...


@dataclass(frozen=True)
class ExecutionContext:
    """How zfs gets invoked. Passed explicitly to every operation instead of a shared toggle."""
    binary: str = constants.DEFAULT_ZFS_BINARY
    sudo: bool = constants.DEFAULT_USE_SUDO
    timeout: int = constants.DEFAULT_COMMAND_TIMEOUT

    @classmethod
    def from_config(cls, **overrides: Any) -> 'ExecutionContext':
        binary = config_manager.get_setting("zfs_binary") or find_executable("zfs") or constants.DEFAULT_ZFS_BINARY
        sudo = bool(config_manager.get_setting("use_sudo", constants.DEFAULT_USE_SUDO))
        timeout = config_manager.get_setting("command_timeout", constants.DEFAULT_COMMAND_TIMEOUT)
        try:
            timeout = int(timeout)
            if timeout <= 0:
                timeout = constants.DEFAULT_COMMAND_TIMEOUT
        except (TypeError, ValueError):
            timeout = constants.DEFAULT_COMMAND_TIMEOUT
        values = {'binary': binary, 'sudo': sudo, 'timeout': timeout}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

# --- END OF FILE models.py ---
