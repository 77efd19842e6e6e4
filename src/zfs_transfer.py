# --- START OF FILE zfs_transfer.py ---

"""
Send/receive orchestration.

A send runs as one subprocess: its stdout (the stream) goes to the caller's
sink, its stderr is read in the calling thread, either through the progress
parser or just drained. Once it exits, a non-zero status or any stderr text
that was not progress is classified and raised.
"""

import dataclasses
import threading
from typing import Optional

import constants
import zfs_core
from debug_logging import log_debug, log_error, log_info
from models import ProgressSummary, ReceiveOptions, SendOptions
from parsers.send_progress import ProgressCallback, SendProgressParser
from zfs_errors import ZfsError, ZfsParsingError, classify, not_found
from zfs_runner import CommandRunner, RunningCommand, ZfsCommandBuilder


def send_command(snapshot_name: str, options: Optional[SendOptions] = None,
                 with_progress: bool = False) -> ZfsCommandBuilder:
    options = options or SendOptions()
    builder = (ZfsCommandBuilder('send')
               .flag('-P', with_progress)
               .flag('-v', with_progress)
               .flag('-R', options.replication_stream)
               .flag('-L', options.large_blocks)
               .flag('-e', options.embedded)
               .flag('-c', options.compressed)
               .flag('-p', options.include_properties))
    if options.incremental:
        builder.flag('-I' if options.include_intermediary else '-i').target(options.incremental)
    return builder.target(snapshot_name)


class ZfsTransfer:
    """Runs zfs send (and optionally receive) for one snapshot at a time."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def send(self, snapshot_name: str, sink, options: Optional[SendOptions] = None,
             progress_callback: Optional[ProgressCallback] = None) -> ProgressSummary:
        """
        Streams ``snapshot_name`` into ``sink``.

        ``progress_callback`` is called from this thread for every progress
        event while the send runs; it must return quickly, since the send
        stalls while its stderr pipe is full.

        Raises:
            DatasetNotFoundError: snapshot (or incremental base) is missing,
                checked before anything is started.
            ZfsClassifiedError: the send failed.
            ZfsParsingError: the send succeeded but its progress header was unreadable.
        """
        options = options or SendOptions()
        self.verify_endpoints(snapshot_name, options.incremental)
        return self._send_verified(snapshot_name, sink, options, progress_callback)

    def send_incremental(self, base_name: str, snapshot_name: str, sink,
                         options: Optional[SendOptions] = None,
                         progress_callback: Optional[ProgressCallback] = None) -> ProgressSummary:
        """Sends the changes between ``base_name`` and ``snapshot_name``."""
        options = dataclasses.replace(options or SendOptions(), incremental=base_name)
        return self.send(snapshot_name, sink, options, progress_callback)

    def send_to(self, snapshot_name: str, target_name: str,
                send_options: Optional[SendOptions] = None,
                receive_options: Optional[ReceiveOptions] = None,
                progress_callback: Optional[ProgressCallback] = None) -> ProgressSummary:
        """
        Pipes a send of ``snapshot_name`` into ``zfs receive target_name``.

        A send-side failure is raised first: when the receiver rejects the
        stream the send reports a broken pipe. Otherwise the receiver's own
        exit status and stderr are classified.
        """
        send_options = send_options or SendOptions()
        self.verify_endpoints(snapshot_name, send_options.incremental)

        receiver = self.runner.spawn_with_stdin(zfs_core.receive_command(target_name, receive_options))
        receive_stderr = []
        drainer = threading.Thread(target=lambda: receive_stderr.append(receiver.read_diagnostics()), daemon=True)
        drainer.start()

        send_error: Optional[ZfsError] = None
        summary = None
        try:
            summary = self._send_verified(snapshot_name, receiver.stdin, send_options, progress_callback)
        except ZfsError as e:
            send_error = e
        except BaseException:
            self._close_quietly(receiver.stdin)
            receiver.terminate()
            raise
        self._close_quietly(receiver.stdin)

        returncode = receiver.wait()
        drainer.join(constants.THREAD_JOIN_TIMEOUT)
        if send_error is not None:
            raise send_error

        leftover = "".join(receive_stderr)
        if returncode != 0 or leftover.strip():
            raise classify(leftover, receiver.command_parts, returncode, target_name)
        log_info("TRANSFER", f"Received '{snapshot_name}' into '{target_name}'.")
        return summary

    def verify_endpoints(self, snapshot_name: str, base_name: Optional[str] = None):
        """Fails fast with a not-found error naming whichever endpoint is missing (source first)."""
        for name in (snapshot_name, base_name):
            if name and not zfs_core.dataset_exists(self.runner, name):
                log_error("TRANSFER", f"Cannot send: '{name}' does not exist.")
                raise not_found(name)

    def _send_verified(self, snapshot_name: str, sink, options: SendOptions,
                       progress_callback: Optional[ProgressCallback]) -> ProgressSummary:
        builder = send_command(snapshot_name, options, with_progress=progress_callback is not None)
        running = self.runner.start(builder, sink)
        log_debug("TRANSFER", f"Send of '{snapshot_name}' started (pid {running.process.pid}).")
        return self._finish(running, progress_callback)

    @staticmethod
    def _finish(running: RunningCommand, progress_callback: Optional[ProgressCallback]) -> ProgressSummary:
        parser = SendProgressParser()
        summary = ProgressSummary()
        parse_error: Optional[ZfsParsingError] = None
        try:
            try:
                summary = parser.parse_stream(running.diagnostics, progress_callback)
            except ZfsParsingError as e:
                parse_error = e
                # keep reading so the process can finish writing its error
                parser.drain(running.diagnostics)
        except BaseException:
            running.terminate()
            ZfsTransfer._close_quietly(running.diagnostics)
            raise

        returncode = running.wait()
        ZfsTransfer._close_quietly(running.diagnostics)
        leftover = "\n".join(parser.unparsed_lines)

        if returncode != 0:
            raise classify(leftover, running.command_parts, returncode)
        if parse_error is not None:
            raise parse_error
        if leftover.strip():
            raise classify(leftover, running.command_parts, returncode)
        return summary

    @staticmethod
    def _close_quietly(stream):
        if stream is None:
            return
        try:
            stream.close()
        except OSError:
            # the reader already went away (broken pipe on flush)
            pass

# --- END OF FILE zfs_transfer.py ---
