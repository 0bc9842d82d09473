"""
Transcript capture for interactive provider sessions.

Watches the raw output of an interactive child process together with the
keystrokes the user types into it, and turns them into session messages:

- a ``user`` message each time the user submits a line while the child is
  showing an input prompt (a line starting or ending with ``>``);
- one ``system`` message at the end holding the complete raw output.

Prompt detection is a heuristic over unstructured terminal output. Any line
that merely contains a leading or trailing ``>`` will arm it; the full
transcript dump at the end is what guarantees nothing is lost.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from uai.errors import UAIError
from uai.logger import get_logger
from uai.session.models import Role

logger = get_logger(__name__)

PROMPT_MARKER = ">"
CTRL_C = "\x03"
ENTER_KEYS = ("\r", "\n")
BACKSPACE_CODES = (127, 8)
ERASE_SEQUENCE = "\b \b"
TRANSCRIPT_HEADER = "=== Full session log ===\n"

MessageSink = Callable[[Role, str], None]

# An escape sequence (CSI, SS3 or Alt+key) is one keystroke; anything else is one character
_KEYSTROKE = re.compile(r"\x1b(?:\[[0-?]*[ -/]*[@-~]|O.|.)?|.", re.DOTALL)


def split_keystrokes(text: str) -> list[str]:
    """Split one read from the terminal into individual keystrokes."""
    return _KEYSTROKE.findall(text)


class CaptureState(Enum):
    AWAITING_PROMPT_MARKER = "awaiting_prompt_marker"
    USER_INPUT_BUFFERING = "user_input_buffering"


class CaptureMode(Enum):
    """How the child is attached: pseudo-terminal, or plain pipes."""

    PTY = "pty"
    PIPE = "pipe"


class KeyAction(Enum):
    FORWARD = "forward"
    INTERRUPT = "interrupt"


@dataclass
class KeyOutcome:
    """What the runner should do with a keystroke."""

    action: KeyAction
    echo: str = ""


class TranscriptCapture:
    """
    Incremental state machine over child output and user keystrokes.

    The capture never performs I/O itself; the runner feeds it data and acts
    on the returned ``KeyOutcome``. Messages go to ``sink``; errors raised by
    the sink are logged and swallowed so a failed write never interrupts the
    live session.
    """

    def __init__(
        self,
        sink: MessageSink,
        mode: CaptureMode = CaptureMode.PTY,
        marker: str = PROMPT_MARKER,
    ):
        self.sink = sink
        self.mode = mode
        self.marker = marker
        self.state = CaptureState.AWAITING_PROMPT_MARKER
        self.input_buffer = ""
        self.interrupted = False
        self._line_buffer = ""
        self._chunks: list[str] = []
        self._finished = False

    @property
    def transcript(self) -> str:
        return "".join(self._chunks)

    @property
    def awaiting_input(self) -> bool:
        return self.state is CaptureState.USER_INPUT_BUFFERING

    # --- child output ---

    def feed_output(self, chunk: str) -> None:
        """Consume a chunk of child stdout (or the combined pty stream)."""
        if not chunk:
            return
        self._chunks.append(chunk)

        if self.mode is CaptureMode.PIPE:
            # Pipe output arrives unbuffered by line; a bare trailing prompt
            # is enough to arm input capture.
            if self.marker in chunk and chunk.strip().endswith(self.marker):
                self.state = CaptureState.USER_INPUT_BUFFERING

        self._line_buffer += chunk
        if "\n" not in self._line_buffer:
            return

        *lines, self._line_buffer = self._line_buffer.split("\n")
        for line in lines:
            text = line.strip()
            if text.startswith(self.marker) or text.endswith(self.marker):
                self.state = CaptureState.USER_INPUT_BUFFERING

    def feed_error(self, chunk: str) -> None:
        """Child stderr is recorded in the transcript but never parsed."""
        if chunk:
            self._chunks.append(chunk)

    # --- user input ---

    def feed_key(self, key: str) -> KeyOutcome:
        """
        Consume one keystroke from the user (see ``split_keystrokes``).

        Returns:
            INTERRUPT for Ctrl+C, otherwise FORWARD with any local echo the
            runner must print in pipe mode.
        """
        if key == CTRL_C:
            self.interrupted = True
            return KeyOutcome(KeyAction.INTERRUPT)
        if not key:
            return KeyOutcome(KeyAction.FORWARD)

        echo = ""
        if key in ENTER_KEYS:
            submitted = self.input_buffer.strip()
            if submitted and self.awaiting_input:
                self._emit("user", submitted)
                self.state = CaptureState.AWAITING_PROMPT_MARKER
            self.input_buffer = ""
        elif ord(key[0]) in BACKSPACE_CODES:
            self.input_buffer = self.input_buffer[:-1]
            echo = ERASE_SEQUENCE
        elif ord(key[0]) >= 32:
            self.input_buffer += key
            echo = key

        if self.mode is not CaptureMode.PIPE:
            echo = ""
        return KeyOutcome(KeyAction.FORWARD, echo)

    # --- completion ---

    def finish(self) -> Optional[str]:
        """
        Emit the full raw transcript as a ``system`` message.

        Only the first call emits; later calls return None.
        """
        if self._finished:
            return None
        self._finished = True
        content = TRANSCRIPT_HEADER + self.transcript
        self._emit("system", content)
        return content

    def _emit(self, role: Role, content: str) -> None:
        try:
            self.sink(role, content)
        except UAIError as e:
            logger.warning(f"Failed to record {role} message: {e}")
