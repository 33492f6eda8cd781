"""Console output formatting utilities for pipesh."""

from __future__ import annotations

import sys
from typing import Optional, TextIO

from pipesh.model import ExitStatus


class Console:
    """Centralized console output formatting."""

    def __init__(
        self,
        debug: bool = False,
        show_status: bool = True,
        out: Optional[TextIO] = None,
        err: Optional[TextIO] = None,
    ):
        """
        Initialize console formatter.

        Args:
            debug: If True, show debug traces and stack traces
            show_status: If True, print the exit status after each foreground job
            out: Stream for regular output (defaults to sys.stdout at call time)
            err: Stream for errors and debug output (defaults to sys.stderr)
        """
        self.debug = debug
        self.show_status = show_status
        self._out = out
        self._err = err

    @property
    def out(self) -> TextIO:
        return self._out or sys.stdout

    @property
    def err(self) -> TextIO:
        return self._err or sys.stderr

    def print_status(self, status: ExitStatus) -> None:
        """Print the exit status of a finished foreground job."""
        if self.show_status:
            print(str(status), file=self.out, flush=True)

    def print_job_started(self, job_id: int, pids: list[int], command: str) -> None:
        """Print the job table entry of a freshly started background job."""
        pid_list = " ".join(str(p) for p in pids) or "-"
        print(f"[{job_id}] {pid_list}", file=self.out, flush=True)
        self.print_debug(f"background job {job_id}: {command}")

    def print_job_done(self, job_id: int, command: str, status: ExitStatus) -> None:
        """Print the completion notice of a background job."""
        print(f"[{job_id}] done {command} ({status})", file=self.out, flush=True)

    def print_error(
        self,
        title: str,
        message: str = "",
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            suggestion: Optional suggestion for user
        """
        line = f"pipesh: {title}" + (f": {message}" if message else "")
        print(line, file=self.err)
        if suggestion:
            print(f"  hint: {suggestion}", file=self.err)
        self.err.flush()

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__, file=self.err)
        else:
            print(f"pipesh: {exc}", file=self.err, flush=True)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message, file=self.out, flush=True)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=self.err, flush=True)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
