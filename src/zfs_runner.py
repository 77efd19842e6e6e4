# --- START OF FILE zfs_runner.py ---

"""
Process execution for zfs commands.

CommandRunner.run() is for short commands whose whole output is wanted at
once. start() and spawn_with_stdin() return a RunningCommand for the
streaming send/receive pair, where output has to be consumed while the
process is still running.
"""

import datetime
import io
import shlex
import subprocess
import threading
import traceback
from typing import List, Optional, Tuple, Union

import constants
from debug_logging import log, log_debug, log_error
from models import ExecutionContext
from zfs_errors import ZfsCommandError, ZfsStreamError


def _join(parts: List[str]) -> str:
    try:
        return shlex.join(parts)
    except TypeError:
        return str(parts)


def _has_fileno(sink) -> bool:
    try:
        sink.fileno()
    except (AttributeError, io.UnsupportedOperation, OSError, ValueError):
        return False
    return True


class CommandBuilder:
    """Accumulates the argument list for one zfs invocation."""
    def __init__(self, action: str):
        if not action:
            raise ValueError("Action cannot be empty")
        self._parts: List[str] = [action]

    def _add_flag(self, flag: str, condition: bool = True):
        if condition:
            self._parts.append(flag)
        return self

    def _add_option(self, flag: str, value: Optional[str]):
        if value is not None:
            self._parts.extend([flag, str(value)])
        return self

    def _add_key_value_option(self, flag: str, key: str, value):
        if key and value is not None:
            self._parts.extend([flag, f"{key}={value}"])
        return self

    def _add_args(self, *args: Optional[str]):
        for arg in args:
            if arg is not None:
                self._parts.append(arg)
        return self

    def build(self) -> List[str]:
        return list(self._parts)


class ZfsCommandBuilder(CommandBuilder):
    def recursive(self, condition=True): return self._add_flag('-r', condition)
    def force(self, condition=True): return self._add_flag('-f', condition)
    def parsable(self, condition=True): return self._add_flag('-p', condition)
    def script(self, condition=True): return self._add_flag('-H', condition)  # no header, tab separated
    def create_parents(self, condition=True): return self._add_flag('-p', condition)
    def type(self, types: Optional[str]): return self._add_option('-t', types)
    def depth(self, levels: Optional[int]): return self._add_option('-d', levels)
    def output_props(self, props: List[str]): return self._add_option('-o', ','.join(props))
    def option(self, key: str, value): return self._add_key_value_option('-o', key, value)
    def flag(self, flag: str, condition=True): return self._add_flag(flag, condition)
    def target(self, name: str): return self._add_args(name)
    def targets(self, *names: str): return self._add_args(*names)


class RunningCommand:
    """
    A started zfs process.

    ``diagnostics`` is the readable stderr pipe. For start(), the primary
    output either goes straight into the sink's file descriptor or is pumped
    into ``sink.write`` by a background thread. For spawn_with_stdin(),
    ``stdin`` is the writable pipe feeding the process.
    """

    def __init__(self, process: subprocess.Popen, command_parts: List[str], stdout_sink=None):
        self.process = process
        self.command_parts = command_parts
        self.stdout_sink = stdout_sink
        self.stdin = process.stdin
        self.diagnostics = process.stderr
        self._pump_thread: Optional[threading.Thread] = None
        self._pump_error: Optional[BaseException] = None

    def start_pump(self):
        """Copies the process stdout into the sink until EOF, in a daemon thread."""
        self._pump_thread = threading.Thread(target=self._pump_target, daemon=True)
        self._pump_thread.start()

    def _pump_target(self):
        source = self.process.stdout
        try:
            while True:
                chunk = source.read(constants.PUMP_CHUNK_SIZE)
                if not chunk:
                    break
                self.stdout_sink.write(chunk)
        except (OSError, ValueError) as e:
            self._pump_error = e
            log_error("RUNNER", f"Error copying output of '{_join(self.command_parts)}': {e}")
            # keep the process from blocking on a pipe nobody reads any more
            try:
                self.process.kill()
            except OSError:
                pass
        finally:
            try:
                source.close()
            except OSError:
                pass

    def wait(self, timeout: Optional[float] = None) -> int:
        """Waits for exit and for the output pump. Raises ZfsStreamError if pumping failed."""
        returncode = self.process.wait(timeout=timeout)
        if self._pump_thread is not None:
            # unbounded: the stream is complete only once the pump returns
            self._pump_thread.join()
        if self._pump_error is not None:
            raise ZfsStreamError(f"Error copying output of '{_join(self.command_parts)}': {self._pump_error}") from self._pump_error
        return returncode

    def read_diagnostics(self) -> str:
        """Reads whatever is left on stderr (blocks until the process closes it)."""
        if self.diagnostics is None:
            return ""
        try:
            data = self.diagnostics.read()
        except ValueError:
            return ""
        except OSError as e:
            raise ZfsStreamError(f"Error reading stderr of '{_join(self.command_parts)}': {e}") from e
        if isinstance(data, bytes):
            data = data.decode('utf-8', errors='replace')
        return data or ""

    def terminate(self):
        """Asks the process to stop; readers see end of stream once it exits."""
        if self.process.poll() is not None:
            return
        self.process.terminate()
        try:
            self.process.wait(timeout=constants.TERMINATE_TIMEOUT)
        except subprocess.TimeoutExpired:
            log("RUNNER", f"Process {self.process.pid} ignored SIGTERM, killing it.", "WARNING")
            self.process.kill()


class CommandRunner:
    """Runs zfs according to an ExecutionContext."""

    def __init__(self, context: Optional[ExecutionContext] = None):
        self.context = context or ExecutionContext()

    def build(self, args: Union[List[str], CommandBuilder]) -> List[str]:
        """Full argv for the given zfs arguments, with sudo in front when the context asks for it."""
        if isinstance(args, CommandBuilder):
            args = args.build()
        parts = [self.context.binary] + list(args)
        if self.context.sudo:
            parts = ['sudo'] + parts
        return parts

    def run(self, args: Union[List[str], CommandBuilder], input_data: Optional[str] = None) -> Tuple[int, str, str, List[str]]:
        """
        Runs a short command to completion.

        Returns (returncode, stdout, stderr, command_parts). Launch failures
        and timeouts are reported as returncode -1 with the reason in stderr.
        """
        command_parts = self.build(args)
        cmd_str = _join(command_parts)
        log_debug("RUNNER", f"Executing: {cmd_str}")

        encoded_input = input_data.encode('utf-8') if input_data is not None else None
        start_time = datetime.datetime.now()
        stdout, stderr, returncode = "", "", -1
        try:
            process = subprocess.run(
                command_parts,
                input=encoded_input,
                stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                check=False,
                timeout=self.context.timeout,
            )
            returncode = process.returncode
            stdout = process.stdout.decode('utf-8', errors='replace') if process.stdout else ""
            stderr = process.stderr.decode('utf-8', errors='replace') if process.stderr else ""
        except FileNotFoundError:
            stderr = f"Error: Command not found: '{command_parts[0]}'."
            log_error("RUNNER", stderr)
        except PermissionError:
            stderr = f"Error: Permission denied executing '{command_parts[0]}'."
            log_error("RUNNER", stderr)
        except subprocess.TimeoutExpired:
            stderr = f"Error: Command '{cmd_str}' timed out after {self.context.timeout} seconds."
            log_error("RUNNER", stderr)

        duration = (datetime.datetime.now() - start_time).total_seconds()
        if returncode != 0:
            log("RUNNER", f"Command failed (ret={returncode}, {duration:.3f}s): {cmd_str}: {stderr.strip()}", "WARNING")
        else:
            log_debug("RUNNER", f"Command finished in {duration:.3f}s: {cmd_str}")
        return returncode, stdout, stderr, command_parts

    def start(self, args: Union[List[str], CommandBuilder], sink) -> RunningCommand:
        """
        Starts a command whose stdout goes to ``sink``.

        A sink with a usable file descriptor (file, pipe, socket) is handed to
        the process directly; anything else only needs a write() method and
        is fed by a pump thread.
        """
        command_parts = self.build(args)
        direct = _has_fileno(sink)
        log_debug("RUNNER", f"Starting: {_join(command_parts)} (output: {'fd' if direct else 'pump'})")
        process = self._popen(command_parts, stdout=sink if direct else subprocess.PIPE, stderr=subprocess.PIPE)
        running = RunningCommand(process, command_parts, stdout_sink=sink)
        if not direct:
            running.start_pump()
        return running

    def spawn_with_stdin(self, args: Union[List[str], CommandBuilder]) -> RunningCommand:
        """Starts a command reading its input from a pipe (e.g. zfs receive)."""
        command_parts = self.build(args)
        log_debug("RUNNER", f"Starting: {_join(command_parts)} (input: pipe)")
        process = self._popen(command_parts, stdin=subprocess.PIPE, stdout=subprocess.DEVNULL, stderr=subprocess.PIPE)
        return RunningCommand(process, command_parts)

    @staticmethod
    def _popen(command_parts: List[str], **kwargs) -> subprocess.Popen:
        try:
            return subprocess.Popen(command_parts, **kwargs)
        except FileNotFoundError as e:
            raise ZfsCommandError(f"Command not found: '{command_parts[0]}'.", command_parts) from e
        except PermissionError as e:
            raise ZfsCommandError(f"Permission denied executing '{command_parts[0]}'.", command_parts) from e
        except OSError as e:
            log_error("RUNNER", f"Could not start {_join(command_parts)}: {e}\n{traceback.format_exc()}")
            raise ZfsCommandError(f"Could not start command: {e}", command_parts) from e

# --- END OF FILE zfs_runner.py ---
