"""
Interactive child-process runner.

Spawns a provider CLI under a pseudo-terminal (or, when no pty can be
allocated, with plain pipes), relays the user's terminal to it in raw mode,
and feeds both directions through a ``TranscriptCapture``.
"""

import codecs
import os
import select
import shutil
import signal
import subprocess
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional, TextIO

from uai.errors import InterruptSignal, LaunchFailure
from uai.logger import get_logger
from uai.session.transcript import (
    CaptureMode,
    KeyAction,
    MessageSink,
    TranscriptCapture,
    split_keystrokes,
)

logger = get_logger(__name__)

IS_WINDOWS = sys.platform == "win32"
READ_CHUNK = 4096
POLL_INTERVAL_S = 0.1
TERM_NAME = "xterm-color"
TERMINATE_GRACE_S = 2.0
REAP_INTERVAL_S = 0.05

if IS_WINDOWS:
    _PTY_AVAILABLE = False
else:
    try:
        import fcntl
        import pty
        import struct
        import termios
        import tty

        _PTY_AVAILABLE = True
    except ImportError:
        _PTY_AVAILABLE = False


@dataclass
class CaptureResult:
    """Outcome of an interactive run."""

    exit_code: Optional[int]
    mode: CaptureMode
    interrupted: bool
    transcript: str


def _terminal_size() -> tuple[int, int]:
    size = shutil.get_terminal_size((80, 24))
    return size.columns or 80, size.lines or 24


class PtyChild:
    """Child process attached to the slave side of a pseudo-terminal."""

    mode = CaptureMode.PTY

    def __init__(self, pid: int, master_fd: int):
        self.pid = pid
        self.master_fd = master_fd
        self.returncode: Optional[int] = None

    @classmethod
    def spawn(cls, path: str, args: list[str], cwd: str, env: dict) -> "PtyChild":
        pid, master_fd = pty.fork()
        if pid == 0:
            try:
                os.chdir(cwd)
                os.execvpe(path, [path, *args], env)
            except Exception:
                os._exit(127)
        child = cls(pid, master_fd)
        child.resize(*_terminal_size())
        return child

    def output_fds(self) -> list[int]:
        return [self.master_fd]

    def is_stderr(self, fd: int) -> bool:
        return False

    def read(self, fd: int) -> bytes:
        try:
            return os.read(fd, READ_CHUNK)
        except OSError:
            # EIO once the slave side is closed
            return b""

    def write(self, data: bytes) -> None:
        try:
            os.write(self.master_fd, data)
        except OSError as e:
            logger.debug(f"Write to pty failed: {e}")

    def close_input(self) -> None:
        """A pty has no separate stdin to close."""

    def resize(self, cols: int, rows: int) -> None:
        try:
            winsize = struct.pack("HHHH", rows, cols, 0, 0)
            fcntl.ioctl(self.master_fd, termios.TIOCSWINSZ, winsize)
        except OSError:
            pass

    def terminate(self) -> None:
        try:
            os.kill(self.pid, signal.SIGTERM)
        except ProcessLookupError:
            pass

    def kill(self) -> None:
        try:
            os.kill(self.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass

    def poll(self) -> Optional[int]:
        if self.returncode is None:
            try:
                pid, status = os.waitpid(self.pid, os.WNOHANG)
            except ChildProcessError:
                return self.returncode
            if pid:
                self.returncode = os.waitstatus_to_exitcode(status)
        return self.returncode

    def wait(self) -> Optional[int]:
        if self.returncode is None:
            try:
                _, status = os.waitpid(self.pid, 0)
                self.returncode = os.waitstatus_to_exitcode(status)
            except ChildProcessError:
                pass
        try:
            os.close(self.master_fd)
        except OSError:
            pass
        return self.returncode


class PipeChild:
    """Child process with piped stdin, stdout and stderr."""

    mode = CaptureMode.PIPE

    def __init__(self, proc: subprocess.Popen):
        self.proc = proc

    @classmethod
    def spawn(cls, path: str, args: list[str], cwd: str, env: dict) -> "PipeChild":
        proc = subprocess.Popen(
            [path, *args],
            cwd=cwd,
            env=env,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            bufsize=0,
        )
        return cls(proc)

    def output_fds(self) -> list[int]:
        return [self.proc.stdout.fileno(), self.proc.stderr.fileno()]

    def is_stderr(self, fd: int) -> bool:
        return fd == self.proc.stderr.fileno()

    def read(self, fd: int) -> bytes:
        try:
            return os.read(fd, READ_CHUNK)
        except OSError:
            return b""

    def write(self, data: bytes) -> None:
        if self.proc.stdin.closed:
            return
        try:
            self.proc.stdin.write(data)
            self.proc.stdin.flush()
        except (BrokenPipeError, OSError) as e:
            logger.debug(f"Write to child stdin failed: {e}")

    def close_input(self) -> None:
        try:
            self.proc.stdin.close()
        except OSError:
            pass

    def resize(self, cols: int, rows: int) -> None:
        """Pipes have no window size."""

    def terminate(self) -> None:
        if self.proc.poll() is None:
            self.proc.terminate()

    def kill(self) -> None:
        if self.proc.poll() is None:
            self.proc.kill()

    def poll(self) -> Optional[int]:
        return self.proc.poll()

    def wait(self) -> Optional[int]:
        code = self.proc.wait()
        for stream in (self.proc.stdin, self.proc.stdout, self.proc.stderr):
            try:
                stream.close()
            except OSError:
                pass
        return code


def launch(
    command: str,
    args: Optional[list[str]] = None,
    cwd: Optional[str] = None,
    env: Optional[dict] = None,
    prefer_pty: bool = True,
):
    """
    Start ``command`` for interactive use.

    Tries a pseudo-terminal first and falls back to pipes when a pty cannot
    be allocated.

    Raises:
        LaunchFailure: If the executable is missing or cannot be started.
    """
    args = list(args or [])
    cwd = cwd or os.getcwd()
    env = dict(os.environ if env is None else env)

    path = shutil.which(command)
    if not path:
        raise LaunchFailure(command, "executable not found")

    if prefer_pty and _PTY_AVAILABLE:
        try:
            return PtyChild.spawn(path, args, cwd, {**env, "TERM": TERM_NAME})
        except OSError as e:
            logger.warning(f"pty unavailable ({e}), falling back to pipe mode")

    try:
        return PipeChild.spawn(path, args, cwd, env)
    except OSError as e:
        raise LaunchFailure(command, str(e)) from e


@contextmanager
def raw_terminal(fd: int):
    """Put a tty into raw mode for the duration of the block."""
    if not _PTY_AVAILABLE or not os.isatty(fd):
        yield
        return
    saved = termios.tcgetattr(fd)
    try:
        tty.setraw(fd)
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)


@contextmanager
def forward_resize(child):
    """Relay SIGWINCH to the child's pty; ignored by the capture itself."""
    if child.mode is not CaptureMode.PTY or not hasattr(signal, "SIGWINCH"):
        yield
        return

    def _on_resize(signum, frame):
        child.resize(*_terminal_size())

    try:
        previous = signal.signal(signal.SIGWINCH, _on_resize)
    except ValueError:
        # Not on the main thread
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGWINCH, previous)


def _relay(
    child,
    capture: TranscriptCapture,
    stdin_fd: int,
    stdout: TextIO,
    stderr: TextIO,
) -> None:
    decoders = {
        fd: codecs.getincrementaldecoder("utf-8")(errors="replace")
        for fd in [*child.output_fds(), stdin_fd]
    }
    open_outputs = set(child.output_fds())
    watch_stdin = True

    while open_outputs:
        watched = list(open_outputs) + ([stdin_fd] if watch_stdin else [])
        ready, _, _ = select.select(watched, [], [], POLL_INTERVAL_S)

        if not ready:
            if child.poll() is not None and child.mode is CaptureMode.PIPE:
                # Drain whatever is left, then stop
                for fd in list(open_outputs):
                    _drain(child, capture, fd, decoders[fd], stdout, stderr)
                break
            continue

        for fd in ready:
            if fd == stdin_fd:
                data = os.read(stdin_fd, READ_CHUNK)
                if not data:
                    watch_stdin = False
                    child.close_input()
                    continue
                _forward_keys(child, capture, decoders[fd].decode(data), data, stdout)
                continue

            data = child.read(fd)
            if not data:
                open_outputs.discard(fd)
                continue
            _show(child, capture, fd, decoders[fd].decode(data), stdout, stderr)


def _forward_keys(child, capture: TranscriptCapture, text: str, data: bytes, stdout: TextIO) -> None:
    """
    Feed one stdin read to the capture keystroke by keystroke, then forward it.

    A read can hold several keys when input is pasted or stdin is not a tty. On
    Ctrl+C only the keys typed before it reach the child.
    """
    keys = split_keystrokes(text)
    echo = []
    for index, key in enumerate(keys):
        outcome = capture.feed_key(key)
        if outcome.action is KeyAction.INTERRUPT:
            before = "".join(keys[:index])
            if before:
                child.write(before.encode("utf-8"))
            _echo(stdout, "".join(echo))
            raise InterruptSignal()
        echo.append(outcome.echo)
    child.write(data)
    _echo(stdout, "".join(echo))


def _echo(stdout: TextIO, text: str) -> None:
    if text:
        stdout.write(text)
        stdout.flush()


def _reap(child, grace: float) -> None:
    """Wait up to ``grace`` seconds for a terminated child, then kill it."""
    deadline = time.monotonic() + grace
    while child.poll() is None:
        if time.monotonic() >= deadline:
            logger.warning("Child ignored SIGTERM, killing it")
            child.kill()
            return
        time.sleep(REAP_INTERVAL_S)


def _drain(child, capture, fd, decoder, stdout, stderr) -> None:
    while True:
        ready, _, _ = select.select([fd], [], [], 0)
        if not ready:
            return
        data = child.read(fd)
        if not data:
            return
        _show(child, capture, fd, decoder.decode(data), stdout, stderr)


def _show(child, capture, fd, text, stdout, stderr) -> None:
    if not text:
        return
    if child.is_stderr(fd):
        stderr.write(text)
        stderr.flush()
        capture.feed_error(text)
    else:
        stdout.write(text)
        stdout.flush()
        capture.feed_output(text)


def run_interactive(
    command: str,
    sink: MessageSink,
    args: Optional[list[str]] = None,
    cwd: Optional[str] = None,
    env: Optional[dict] = None,
    prefer_pty: bool = True,
    stdin_fd: Optional[int] = None,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
) -> CaptureResult:
    """
    Run ``command`` interactively and record the conversation through ``sink``.

    Ctrl+C terminates the child and ends the capture gracefully. The full
    raw transcript is always emitted as a final ``system`` message.

    Raises:
        LaunchFailure: If the child cannot be started; nothing is recorded.
    """
    child = launch(command, args, cwd, env, prefer_pty=prefer_pty)
    capture = TranscriptCapture(sink, mode=child.mode)
    stdin_fd = sys.stdin.fileno() if stdin_fd is None else stdin_fd
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr

    logger.debug(f"Started {command} in {child.mode.value} mode")
    try:
        with raw_terminal(stdin_fd), forward_resize(child):
            _relay(child, capture, stdin_fd, stdout, stderr)
    except InterruptSignal:
        logger.debug(f"Interrupted, terminating {command}")
        child.terminate()
        _reap(child, TERMINATE_GRACE_S)
    finally:
        exit_code = child.wait()
        capture.finish()

    return CaptureResult(
        exit_code=exit_code,
        mode=child.mode,
        interrupted=capture.interrupted,
        transcript=capture.transcript,
    )
