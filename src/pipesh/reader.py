# reader.py
from __future__ import annotations

from typing import Optional, TextIO

from .config import DEFAULT_PROMPT
from .errors import EndOfInput, Interrupted, LineSourceError


class LineReader:
    """
    Source of raw input lines.

    With no stream, lines come from the terminal through input() and the
    prompt is shown. With a stream (a file, a pipe, io.StringIO in tests)
    lines are read from it without a prompt.
    """

    def __init__(self, prompt: str = DEFAULT_PROMPT, stream: Optional[TextIO] = None):
        self.prompt = prompt
        self.stream = stream
        if stream is None:
            # line editing and history for input()
            import readline  # noqa: F401

    def read_line(self) -> str:
        """
        Return the next line without its trailing newline.

        Raises:
            EndOfInput: the source is exhausted
            Interrupted: the user pressed Ctrl-C while the line was read
            LineSourceError: the source could not be read
        """
        try:
            if self.stream is None:
                return input(self.prompt)
            line = self.stream.readline()
        except EOFError:
            raise EndOfInput()
        except KeyboardInterrupt:
            raise Interrupted()
        except (OSError, UnicodeDecodeError) as e:
            raise LineSourceError(str(e)) from e

        if not line:
            raise EndOfInput()
        return line.rstrip("\r\n")
