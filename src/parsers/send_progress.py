# --- START OF FILE parsers/send_progress.py ---
"""
Incremental parser for the progress output of `zfs send -P -v`.

The send writes its progress to stderr while the stream itself goes to
stdout:

    full    tank/fs@snap    1075819232      <- header: kind, source, size
    size    1075819233                      <- estimated stream size
    15:39:14        1228816 tank/fs@snap    <- one report per second
    15:39:15        2279888 tank/fs@snap

Lines are read with blocking readline() calls as the process produces them.
"""

from typing import Callable, Iterator, List, Optional

import constants
from debug_logging import log_debug
from models import ProgressReport, ProgressSummary, TransferProgress
from zfs_errors import ZfsParsingError, ZfsStreamError

ProgressCallback = Callable[[TransferProgress], None]


class SendProgressParser:
    """
    Turns one diagnostic stream into TransferProgress events.

    An instance handles a single stream in a single pass. Lines that could
    not be interpreted are collected in ``unparsed_lines`` so the caller can
    classify them once the process has exited.
    """

    def __init__(self):
        self.unparsed_lines: List[str] = []

    def parse_stream(self, stream, callback: Optional[ProgressCallback]) -> ProgressSummary:
        """
        Reads the stream to its end, calling ``callback`` once per event.

        Without a callback the stream is still drained so the writing process
        never blocks on a full pipe, but no events are built.

        Raises:
            ZfsParsingError: if the header or size line is malformed.
            ZfsStreamError: on an I/O failure reading the stream.
        """
        summary = ProgressSummary()
        if callback is None:
            self.drain(stream)
        else:
            for event in self.iter_events(stream):
                summary.events += 1
                callback(event)
        summary.unparsed_lines = list(self.unparsed_lines)
        return summary

    def drain(self, stream) -> None:
        """Consumes the rest of the stream, keeping non-empty lines as unparsed."""
        while True:
            line = self._read_line(stream)
            if line is None:
                return
            if line.strip():
                self.unparsed_lines.append(line)

    def iter_events(self, stream) -> Iterator[TransferProgress]:
        """Lazily yields events as lines arrive. An empty stream yields nothing."""
        header_line = self._read_line(stream)
        if header_line is None:
            return
        size_line = self._read_line(stream)

        try:
            header = self.parse_header(header_line, size_line)
        except ZfsParsingError:
            self.unparsed_lines.append(header_line)
            if size_line:
                self.unparsed_lines.append(size_line)
            raise
        yield header

        while True:
            line = self._read_line(stream)
            if line is None:
                return
            if not line.strip():
                continue
            try:
                report = self.parse_report(line)
            except ZfsParsingError as e:
                log_debug("PROGRESS", f"Unparsed progress line: {line!r}")
                self.unparsed_lines.append(line)
                yield self._with_report(header, None, e)
            else:
                yield self._with_report(header, report, None)

    @staticmethod
    def parse_header(header_line: str, size_line: Optional[str]) -> TransferProgress:
        """Parses the two header lines into the first event (has_report=False)."""
        fields = header_line.split()
        base_name = None
        if len(fields) == 3:
            kind, source_name, source_size = fields
        elif len(fields) == 4:
            # incremental sends name the base as well: "incremental base target size"
            kind, base_name, source_name, source_size = fields
        else:
            raise ZfsParsingError(f"Malformed send progress header ({len(fields)} fields).", raw_line=header_line)

        if size_line is None:
            raise ZfsParsingError("Send progress header is not followed by a size line.", raw_line=header_line)
        size_fields = size_line.split()
        if len(size_fields) != 2 or size_fields[0] != constants.SEND_SIZE_MARKER:
            raise ZfsParsingError("Malformed send size line.", raw_line=size_line)

        try:
            return TransferProgress(
                kind=kind,
                source_name=source_name,
                source_size=int(source_size),
                estimated_size=int(size_fields[1]),
                has_report=False,
                base_name=base_name,
            )
        except ValueError as e:
            raise ZfsParsingError(f"Non-numeric size in send progress header: {e}", raw_line=header_line) from e

    @staticmethod
    def parse_report(line: str) -> ProgressReport:
        fields = line.split()
        if len(fields) != 3:
            raise ZfsParsingError(f"Malformed send progress report ({len(fields)} fields).", raw_line=line)
        timestamp, bytes_sent, current_unit = fields
        try:
            return ProgressReport(timestamp=timestamp, bytes_sent=int(bytes_sent), current_unit=current_unit)
        except ValueError as e:
            raise ZfsParsingError(f"Non-numeric byte count in send progress report: {e}", raw_line=line) from e

    @staticmethod
    def _with_report(header: TransferProgress, report: Optional[ProgressReport],
                     error: Optional[Exception]) -> TransferProgress:
        return TransferProgress(
            kind=header.kind,
            source_name=header.source_name,
            source_size=header.source_size,
            estimated_size=header.estimated_size,
            has_report=True,
            report=report,
            error=error,
            base_name=header.base_name,
        )

    @staticmethod
    def _read_line(stream) -> Optional[str]:
        """Blocks until a full line or end of stream; None means the stream is finished."""
        try:
            raw = stream.readline()
        except ValueError:
            # closed under us (e.g. the caller terminated the process): same as EOF
            return None
        except OSError as e:
            raise ZfsStreamError(f"Error reading diagnostic stream: {e}") from e
        if not raw:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode('utf-8', errors='replace')
        return raw.rstrip('\r\n')
