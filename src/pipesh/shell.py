# shell.py
from __future__ import annotations

from typing import Optional

from .errors import (
    BuiltinError,
    EndOfInput,
    ExecuteError,
    Interrupted,
    LineSourceError,
    ParseError,
)
from .executor import Executor
from .model import ExitStatus
from .parser import parse_all
from .reader import LineReader
from .ui.console import Console, get_console

# exit codes used when a line fails before producing a status
PARSE_FAILURE = 2
EXECUTE_FAILURE = 1

HINTS = {
    "spawn": "check the command name and PATH",
    "open": "check the redirect paths; >> only appends to an existing file",
}


class Shell:
    """Read-eval loop: one line in, jobs parsed, run and reported."""

    def __init__(
        self,
        reader: LineReader,
        executor: Optional[Executor] = None,
        console: Optional[Console] = None,
    ):
        self.reader = reader
        self.executor = executor or Executor()
        self.console = console or get_console()
        self.last_code = 0

    def repl(self) -> int:
        """
        Run until end of input or Ctrl-C at the prompt.

        Every other failure is reported and the loop goes on.

        Returns:
            The shell exit code of the last line run
        """
        while True:
            self.report_background()
            try:
                line = self.reader.read_line()
            except (EndOfInput, Interrupted) as e:
                self.console.print_debug(f"leaving loop: {e}")
                if self.reader.stream is None:
                    self.console.print_info("")
                break
            except LineSourceError as e:
                self.console.print_error("input", str(e))
                break

            self.run_line(line)

        return self.last_code

    def run_line(self, line: str) -> Optional[ExitStatus]:
        """
        Parse and execute every job on a line.

        Nothing runs if any job on the line fails to parse.

        Returns:
            The status of the last foreground job, or None if the line was
            blank, ended with a background job, or failed
        """
        if not line.strip():
            return None

        try:
            jobs = parse_all(line)
        except ParseError as e:
            self.console.print_error("syntax error", str(e))
            self.last_code = PARSE_FAILURE
            return None

        status: Optional[ExitStatus] = None
        for job in jobs:
            status = None
            try:
                result = self.executor.execute(job)
            except ExecuteError as e:
                self.console.print_error(str(e), suggestion=HINTS.get(e.kind))
                self.last_code = EXECUTE_FAILURE
                continue
            except BuiltinError as e:
                self.console.print_error(str(e))
                self.last_code = EXECUTE_FAILURE
                continue
            except Exception as e:
                self.console.print_exception(e)
                self.last_code = EXECUTE_FAILURE
                continue

            if result.status is None:
                self.console.print_job_started(result.job_id or 0, result.pids, str(job))
                self.last_code = 0
            else:
                status = result.status
                self.console.print_status(status)
                self.last_code = status.shell_code

        return status

    def report_background(self) -> None:
        for done in self.executor.jobs.reap():
            self.console.print_job_done(done.id, str(done.job), done.status)

    def wait_background(self) -> None:
        for done in self.executor.jobs.wait_all():
            self.console.print_job_done(done.id, str(done.job), done.status)
