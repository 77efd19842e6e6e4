# --- START OF FILE zfs_errors.py ---

"""
Error classes for zfsflow and the classifier that maps zfs diagnostic text
onto them.

classify() never raises. It returns an exception instance so callers decide
whether to raise it, log it or branch on its ``kind``.
"""

import enum
import re
import shlex
from typing import List, Optional, Pattern, Tuple, Type


class ZfsError(Exception):
    """Base class for ZFS related errors."""
    pass


class ZfsCommandError(ZfsError):
    """A zfs command could not be run or reported failure."""
    def __init__(self, message, command_parts=None, stderr=None, returncode=None):
        super().__init__(message)
        self.command_parts = command_parts
        self.stderr = stderr
        self.returncode = returncode

    def __str__(self):
        details = []
        if self.command_parts:
            try:
                details.append(f"Command: {shlex.join(self.command_parts)}")
            except TypeError:
                details.append(f"Command: {self.command_parts}")
        if self.returncode is not None:
            details.append(f"Return Code: {self.returncode}")
        if self.stderr:
            stderr_short = self.stderr.strip()
            if len(stderr_short) > 300:
                stderr_short = stderr_short[:300] + "..."
            details.append(f"Stderr: {stderr_short}")
        details_str = " (" + ", ".join(details) + ")" if details else ""
        return f"{super().__str__()}{details_str}"


class ZfsParsingError(ZfsError):
    """Output of a zfs command did not have the expected shape."""
    def __init__(self, message, raw_line=None, command_parts=None):
        super().__init__(message)
        self.raw_line = raw_line
        self.command_parts = command_parts

    def __str__(self):
        details = []
        if self.command_parts:
            try:
                details.append(f"Command: {shlex.join(self.command_parts)}")
            except TypeError:
                details.append(f"Command: {self.command_parts}")
        if self.raw_line is not None:
            line = self.raw_line
            details.append(f"Problematic Line: '{line[:100]}{'...' if len(line) > 100 else ''}'")
        details_str = " (" + ", ".join(details) + ")" if details else ""
        return f"{super().__str__()}{details_str}"


class ZfsStreamError(ZfsError):
    """I/O failure on a pipe connected to a zfs subprocess."""
    pass


# --- Property value errors ---

class PropertyNoneError(ZfsError, ValueError):
    """Property is set to the 'none' value."""
    def __init__(self, name):
        super().__init__(f"value of '{name}' is 'none'")
        self.name = name


class PropertyEmptyError(ZfsError, ValueError):
    """Property is not set at all."""
    def __init__(self, name):
        super().__init__(f"value of '{name}' is not set")
        self.name = name


class PropertyNotBoolError(ZfsError, ValueError):
    """Property is neither 'on' nor 'off'."""
    def __init__(self, name, value):
        super().__init__(f"value of '{name}' is not 'on' or 'off': '{value}'")
        self.name = name
        self.value = value


# --- Classified diagnostics ---

class ErrorKind(enum.Enum):
    NOT_FOUND = "not-found"
    ALREADY_EXISTS = "already-exists"
    INVALID_NAME = "invalid-name"
    NOT_MOUNTED = "not-mounted"
    BROKEN_PIPE = "broken-pipe"
    NOT_A_CLONE = "not-a-clone"
    INVALID_PROPERTY = "invalid-property"
    UNCLASSIFIED = "unclassified"


class ZfsClassifiedError(ZfsCommandError):
    """
    A zfs failure whose diagnostic text was recognised.

    ``diagnostic`` always holds the original text verbatim. ``identifier``
    names the dataset the failure refers to when the caller knows it.
    """
    kind = ErrorKind.UNCLASSIFIED

    def __init__(self, diagnostic, command_parts=None, returncode=None, identifier=None):
        first_line = diagnostic.strip().splitlines()[0] if diagnostic.strip() else "no diagnostic output"
        super().__init__(f"[{self.kind.value}] {first_line}", command_parts, diagnostic, returncode)
        self.diagnostic = diagnostic
        self.identifier = identifier

    def __eq__(self, other):
        if not isinstance(other, ZfsClassifiedError):
            return NotImplemented
        return (type(self) is type(other)
                and self.diagnostic == other.diagnostic
                and self.identifier == other.identifier)

    def __hash__(self):
        return hash((type(self), self.diagnostic, self.identifier))

    def __repr__(self):
        return f"{type(self).__name__}({self.diagnostic!r})"


class DatasetNotFoundError(ZfsClassifiedError):
    kind = ErrorKind.NOT_FOUND


class DatasetExistsError(ZfsClassifiedError):
    kind = ErrorKind.ALREADY_EXISTS


class InvalidDatasetNameError(ZfsClassifiedError):
    kind = ErrorKind.INVALID_NAME


class NotMountedError(ZfsClassifiedError):
    """Dataset was created but could not be mounted, usually for lack of root privileges."""
    kind = ErrorKind.NOT_MOUNTED


class DestinationPipeError(ZfsClassifiedError):
    """The receiving side of a transfer closed its end of the pipe."""
    kind = ErrorKind.BROKEN_PIPE


class NotACloneError(ZfsClassifiedError):
    kind = ErrorKind.NOT_A_CLONE


class InvalidPropertyError(ZfsClassifiedError):
    kind = ErrorKind.INVALID_PROPERTY


class UnclassifiedError(ZfsClassifiedError):
    kind = ErrorKind.UNCLASSIFIED


# Order is precedence: the first matching pattern wins.
ERROR_PATTERNS: Tuple[Tuple[Pattern, Type[ZfsClassifiedError]], ...] = (
    (re.compile(r"dataset does not exist"), DatasetNotFoundError),
    (re.compile(r"dataset already exists"), DatasetExistsError),
    (re.compile(
        r"invalid dataset name"
        r"|trailing slash in name"
        r"|leading slash in name"
        r"|empty component in name"
        r"|invalid character .* in name"
        r"|multiple '@' and/or '#' delimiters in name"
    ), InvalidDatasetNameError),
    (re.compile(
        r"filesystem successfully created, but (it may only be mounted by root|not mounted)"
        r"|only be mounted by root"
    ), NotMountedError),
    (re.compile(r"[Bb]roken pipe"), DestinationPipeError),
    (re.compile(r"not a cloned filesystem"), NotACloneError),
    (re.compile(r"bad property list: invalid property|invalid property '"), InvalidPropertyError),
)


def classify(diagnostic, command_parts: Optional[List[str]] = None,
             returncode: Optional[int] = None, identifier: Optional[str] = None) -> ZfsClassifiedError:
    """Maps zfs diagnostic text to the matching ZfsClassifiedError instance."""
    if isinstance(diagnostic, bytes):
        text = diagnostic.decode("utf-8", errors="replace")
    else:
        text = diagnostic if isinstance(diagnostic, str) else str(diagnostic)
    for pattern, error_cls in ERROR_PATTERNS:
        if pattern.search(text):
            return error_cls(text, command_parts, returncode, identifier)
    return UnclassifiedError(text, command_parts, returncode, identifier)


def not_found(name: str) -> DatasetNotFoundError:
    """Builds the error zfs itself reports for a missing dataset, tagged with its name."""
    return DatasetNotFoundError(f"cannot open '{name}': dataset does not exist", identifier=name)

# --- END OF FILE zfs_errors.py ---
