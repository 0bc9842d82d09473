"""
Tests for the interactive runner, using short-lived Python children.
"""

import io
import os
import signal
import sys
import threading
import time
from unittest.mock import patch

import pytest

from uai.errors import LaunchFailure
from uai.session import interactive
from uai.session.interactive import run_interactive
from uai.session.transcript import TRANSCRIPT_HEADER, CaptureMode

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="requires select on pipes")


class RecordingSink:
    def __init__(self):
        self.messages = []

    def __call__(self, role, content):
        self.messages.append((role, content))


@pytest.fixture
def keyboard():
    """A stdin pipe plus a helper that types bytes into it after a delay."""
    read_fd, write_fd = os.pipe()
    timers = []

    def type_later(delay, data):
        timer = threading.Timer(delay, os.write, args=(write_fd, data))
        timers.append(timer)
        timer.start()

    yield read_fd, type_later

    for timer in timers:
        timer.cancel()
        timer.join()
    for fd in (read_fd, write_fd):
        try:
            os.close(fd)
        except OSError:
            pass


@pytest.fixture
def closed_stdin():
    """Read end of a pipe whose write end is already closed (immediate EOF)."""
    read_fd, write_fd = os.pipe()
    os.close(write_fd)
    yield read_fd
    try:
        os.close(read_fd)
    except OSError:
        pass


class TestLaunch:
    def test_missing_executable_raises_launch_failure(self):
        with pytest.raises(LaunchFailure) as exc:
            interactive.launch("definitely-not-a-real-command-uai")
        assert "definitely-not-a-real-command-uai" in str(exc.value)

    def test_missing_executable_records_nothing(self):
        sink = RecordingSink()
        with pytest.raises(LaunchFailure):
            run_interactive("definitely-not-a-real-command-uai", sink)
        assert sink.messages == []


@posix_only
class TestPipeMode:
    def test_output_is_relayed_and_dumped(self, closed_stdin):
        sink = RecordingSink()
        stdout, stderr = io.StringIO(), io.StringIO()

        result = run_interactive(
            sys.executable,
            sink,
            args=["-u", "-c", "import sys; print('> ready'); print('oops', file=sys.stderr); print('bye')"],
            prefer_pty=False,
            stdin_fd=closed_stdin,
            stdout=stdout,
            stderr=stderr,
        )

        assert result.mode is CaptureMode.PIPE
        assert result.exit_code == 0
        assert not result.interrupted
        assert "> ready" in stdout.getvalue()
        assert "bye" in stdout.getvalue()
        assert "oops" in stderr.getvalue()

        assert len(sink.messages) == 1
        role, content = sink.messages[0]
        assert role == "system"
        assert content.startswith(TRANSCRIPT_HEADER)
        assert "bye" in content
        assert "oops" in content

    def test_child_stdin_is_closed_on_eof(self, closed_stdin):
        sink = RecordingSink()
        result = run_interactive(
            sys.executable,
            sink,
            args=["-u", "-c", "import sys; data = sys.stdin.read(); print('got', len(data))"],
            prefer_pty=False,
            stdin_fd=closed_stdin,
            stdout=io.StringIO(),
            stderr=io.StringIO(),
        )
        assert result.exit_code == 0
        assert "got 0" in result.transcript

    def test_nonzero_exit_code_is_reported(self, closed_stdin):
        result = run_interactive(
            sys.executable,
            RecordingSink(),
            args=["-c", "raise SystemExit(3)"],
            prefer_pty=False,
            stdin_fd=closed_stdin,
            stdout=io.StringIO(),
            stderr=io.StringIO(),
        )
        assert result.exit_code == 3


@pytest.mark.skipif(not interactive._PTY_AVAILABLE, reason="pty not available")
class TestPtyMode:
    def test_output_is_captured_through_pty(self, closed_stdin):
        sink = RecordingSink()
        stdout = io.StringIO()

        result = run_interactive(
            sys.executable,
            sink,
            args=["-c", "print('hello from pty')"],
            stdin_fd=closed_stdin,
            stdout=stdout,
            stderr=io.StringIO(),
        )

        assert result.mode is CaptureMode.PTY
        assert result.exit_code == 0
        assert "hello from pty" in stdout.getvalue()
        assert sink.messages[-1][0] == "system"
        assert "hello from pty" in sink.messages[-1][1]


SLEEPING_PROMPT = (
    "import time\n"
    "print('> ', flush=True)\n"
    "time.sleep(10)\n"
    "print('after-sleep', flush=True)\n"
)


def _user_messages(sink):
    return [content for role, content in sink.messages if role == "user"]


@posix_only
class TestInterruptInPipeMode:
    def test_ctrl_c_after_typing_terminates_child(self, keyboard):
        stdin_fd, type_later = keyboard
        sink = RecordingSink()
        type_later(1.0, b"abc\x03")

        started = time.monotonic()
        result = run_interactive(
            sys.executable,
            sink,
            args=["-u", "-c", SLEEPING_PROMPT],
            prefer_pty=False,
            stdin_fd=stdin_fd,
            stdout=io.StringIO(),
            stderr=io.StringIO(),
        )

        assert time.monotonic() - started < 8
        assert result.interrupted
        assert result.exit_code != 0
        assert "after-sleep" not in result.transcript
        assert _user_messages(sink) == []
        assert sink.messages[-1][0] == "system"
        assert sink.messages[-1][1].startswith(TRANSCRIPT_HEADER)

    def test_keys_in_one_read_are_handled_one_by_one(self, keyboard):
        stdin_fd, type_later = keyboard
        sink = RecordingSink()
        stdout = io.StringIO()
        type_later(1.0, b"hello\rxy\x03")

        result = run_interactive(
            sys.executable,
            sink,
            args=["-u", "-c", SLEEPING_PROMPT],
            prefer_pty=False,
            stdin_fd=stdin_fd,
            stdout=stdout,
            stderr=io.StringIO(),
        )

        assert result.interrupted
        assert _user_messages(sink) == ["hello"]
        assert "after-sleep" not in result.transcript
        # Pipe mode echoes printable keys typed before Ctrl+C
        assert "hello" in stdout.getvalue()
        assert "xy" in stdout.getvalue()

    def test_child_ignoring_sigterm_is_killed(self, keyboard):
        stdin_fd, type_later = keyboard
        script = (
            "import signal, time\n"
            "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
            "print('> ', flush=True)\n"
            "time.sleep(30)\n"
        )
        type_later(1.5, b"\x03")

        started = time.monotonic()
        with patch("uai.session.interactive.TERMINATE_GRACE_S", 0.3):
            result = run_interactive(
                sys.executable,
                RecordingSink(),
                args=["-u", "-c", script],
                prefer_pty=False,
                stdin_fd=stdin_fd,
                stdout=io.StringIO(),
                stderr=io.StringIO(),
            )

        assert time.monotonic() - started < 15
        assert result.interrupted
        assert result.exit_code == -signal.SIGKILL


@pytest.mark.skipif(not interactive._PTY_AVAILABLE, reason="pty not available")
class TestInterruptInPtyMode:
    def test_ctrl_c_after_typing_terminates_child(self, keyboard):
        stdin_fd, type_later = keyboard
        sink = RecordingSink()
        type_later(1.0, b"abc\x03")

        started = time.monotonic()
        result = run_interactive(
            sys.executable,
            sink,
            args=["-u", "-c", SLEEPING_PROMPT],
            stdin_fd=stdin_fd,
            stdout=io.StringIO(),
            stderr=io.StringIO(),
        )

        assert time.monotonic() - started < 8
        assert result.mode is CaptureMode.PTY
        assert result.interrupted
        assert "after-sleep" not in result.transcript
        assert _user_messages(sink) == []
        assert sink.messages[-1][0] == "system"


class FakeChild:
    def __init__(self, exits_after_polls=None):
        self.polls = 0
        self.killed = False
        self.exits_after_polls = exits_after_polls

    def poll(self):
        self.polls += 1
        if self.exits_after_polls is not None and self.polls > self.exits_after_polls:
            return 0
        return None

    def kill(self):
        self.killed = True


class TestReap:
    def test_kills_child_after_grace_period(self):
        child = FakeChild()
        with patch("uai.session.interactive.REAP_INTERVAL_S", 0.01):
            interactive._reap(child, 0.05)
        assert child.killed

    def test_leaves_exited_child_alone(self):
        child = FakeChild(exits_after_polls=1)
        with patch("uai.session.interactive.REAP_INTERVAL_S", 0.01):
            interactive._reap(child, 5)
        assert not child.killed
