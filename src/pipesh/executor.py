# executor.py
from __future__ import annotations

import os
import signal
import subprocess
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .builtin import is_builtin, try_builtin
from .errors import BuiltinPipeError, ExecuteError
from .jobs import JobTable
from .model import ExitStatus, Job, PipeIn, PipeOut, Process, RedirectIn, RedirectOut
from .ui.console import get_console


# ----------------------------------------------------------------------
# Running children
# ----------------------------------------------------------------------

@dataclass
class Child:
    """
    One started stage.

    popen is None for a builtin, which already ran to completion in the
    interpreter and counts as exit status 0.
    """
    argv: Tuple[str, ...]
    popen: Optional[subprocess.Popen] = None

    @property
    def pid(self) -> Optional[int]:
        return self.popen.pid if self.popen else None

    def wait(self) -> int:
        if self.popen is None:
            return 0
        try:
            return self.popen.wait()
        except OSError as e:
            raise ExecuteError("wait", f"could not reap {self.argv[0]}", {"pid": self.pid}) from e

    def poll(self) -> Optional[int]:
        if self.popen is None:
            return 0
        return self.popen.poll()


@dataclass
class ChildChain:
    """Started stages of one job, head first."""
    children: List[Child] = field(default_factory=list)

    @property
    def pids(self) -> List[int]:
        return [c.pid for c in self.children if c.pid is not None]

    def wait(self) -> ExitStatus:
        """
        Wait for every stage, tail first, and return the head's status.

        Downstream stages are reaped before the head so a consumer that
        exits early never leaves a blocked writer unnoticed.
        """
        codes: Dict[int, int] = {}
        try:
            for i in reversed(range(len(self.children))):
                codes[i] = self.children[i].wait()
        except KeyboardInterrupt:
            # the terminal already signalled the whole foreground group;
            # make sure nothing keeps running and reap what is left
            self.signal(signal.SIGINT)
            for i in reversed(range(len(self.children))):
                if i not in codes:
                    codes[i] = self.children[i].wait()

        status = ExitStatus(codes[0])
        get_console().print_debug(f"reaped {self.pids} -> {status}")
        return status

    def poll(self) -> Optional[ExitStatus]:
        """Non-blocking check: the head's status once every stage finished."""
        codes = [c.poll() for c in self.children]
        if any(code is None for code in codes):
            return None
        return ExitStatus(codes[0])

    def signal(self, signum: int) -> None:
        for child in self.children:
            if child.popen is not None and child.popen.poll() is None:
                child.popen.send_signal(signum)

    def abort(self) -> None:
        """Terminate and reap every stage started so far."""
        self.signal(signal.SIGTERM)
        for child in reversed(self.children):
            if child.popen is not None:
                child.popen.wait()


@dataclass
class ExecutionResult:
    """
    Outcome of executing one job.

    status is None for a background job, which is still running and is
    tracked in the job table under job_id.
    """
    status: Optional[ExitStatus]
    job_id: Optional[int] = None
    pids: List[int] = field(default_factory=list)


# ----------------------------------------------------------------------
# Descriptor helpers
# ----------------------------------------------------------------------

_TRUNCATE_FLAGS = os.O_WRONLY | os.O_CREAT | os.O_TRUNC
# append never creates the target
_APPEND_FLAGS = os.O_WRONLY | os.O_APPEND


def _open_redirect(path: str, flags: int) -> int:
    try:
        return os.open(path, flags, 0o666)
    except OSError as e:
        raise ExecuteError("open", f"{path}: {e.strerror or e}", {"path": path}) from e


class _Descriptors:
    """Parent-side copies of every fd the executor opened for one job."""

    def __init__(self) -> None:
        self.owned: Set[int] = set()

    def track(self, fd: int) -> int:
        self.owned.add(fd)
        return fd

    def close(self, fd: Optional[int]) -> None:
        if fd is not None and fd in self.owned:
            self.owned.discard(fd)
            os.close(fd)

    def close_all(self) -> None:
        for fd in list(self.owned):
            self.close(fd)


# ----------------------------------------------------------------------
# Executor
# ----------------------------------------------------------------------

class Executor:
    """Realizes jobs as child processes wired together by pipes and redirects."""

    def __init__(self, jobs: Optional[JobTable] = None):
        self.jobs = jobs if jobs is not None else JobTable()

    def execute(self, job: Job) -> ExecutionResult:
        """
        Run a job.

        Foreground jobs are waited for and report the head stage's status.
        Background jobs are started, registered in the job table and
        returned immediately with status None.

        Raises:
            ExecuteError: a redirect could not be opened, a pipe could not be
                created, a stage could not be spawned or reaped
            BuiltinError: a builtin stage failed
            BuiltinPipeError: a builtin stage was asked to feed a pipe
        """
        chain = self.spawn(job)
        if job.background:
            job_id = self.jobs.add(job, chain)
            return ExecutionResult(status=None, job_id=job_id, pids=chain.pids)
        return ExecutionResult(status=chain.wait(), pids=chain.pids)

    def spawn(self, job: Job) -> ChildChain:
        """Start every stage of job, head first, without waiting."""
        console = get_console()
        stages = job.stages()
        fds = _Descriptors()
        chain = ChildChain()

        try:
            # every redirect is opened before anything runs, so a missing
            # input file aborts the job with no child started
            redirects = self._open_redirects(stages, fds)

            pipe_read: Optional[int] = None
            for stage, (redir_in, redir_out) in zip(stages, redirects):
                if isinstance(stage.input, PipeIn):
                    stdin_fd = pipe_read
                else:
                    stdin_fd = redir_in

                if isinstance(stage.output, PipeOut):
                    if is_builtin(stage.argv):
                        raise BuiltinPipeError(
                            f"{stage.name}: builtin commands cannot write to a pipe"
                        )
                    pipe_read, stdout_fd = self._pipe(fds)
                else:
                    stdout_fd = redir_out

                chain.children.append(self._start(stage, stdin_fd, stdout_fd))

                # the child holds its own copies now
                fds.close(stdin_fd)
                fds.close(stdout_fd)
        except BaseException:
            fds.close_all()
            if chain.children:
                console.print_debug(f"aborting partially started job: {job}")
                chain.abort()
            raise

        console.print_debug(f"started {job} as pids {chain.pids}")
        return chain

    # -- steps ---------------------------------------------------------

    @staticmethod
    def _open_redirects(
        stages: Sequence[Process], fds: _Descriptors
    ) -> List[Tuple[Optional[int], Optional[int]]]:
        out: List[Tuple[Optional[int], Optional[int]]] = []
        for stage in stages:
            redir_in = redir_out = None
            if isinstance(stage.input, RedirectIn):
                redir_in = fds.track(_open_redirect(stage.input.path, os.O_RDONLY))
            if isinstance(stage.output, RedirectOut):
                flags = _APPEND_FLAGS if stage.output.append else _TRUNCATE_FLAGS
                redir_out = fds.track(_open_redirect(stage.output.path, flags))
            out.append((redir_in, redir_out))
        return out

    @staticmethod
    def _pipe(fds: _Descriptors) -> Tuple[int, int]:
        try:
            read_fd, write_fd = os.pipe()
        except OSError as e:
            raise ExecuteError("pipe", e.strerror or str(e)) from e
        return fds.track(read_fd), fds.track(write_fd)

    @staticmethod
    def _start(stage: Process, stdin_fd: Optional[int], stdout_fd: Optional[int]) -> Child:
        if try_builtin(stage.argv):
            get_console().print_debug(f"builtin {stage.name} ran in-process")
            return Child(stage.argv)

        try:
            popen = subprocess.Popen(list(stage.argv), stdin=stdin_fd, stdout=stdout_fd)
        except FileNotFoundError as e:
            raise ExecuteError("spawn", f"{stage.name}: command not found") from e
        except PermissionError as e:
            raise ExecuteError("spawn", f"{stage.name}: permission denied") from e
        except OSError as e:
            raise ExecuteError("spawn", f"{stage.name}: {e.strerror or e}") from e
        return Child(stage.argv, popen)


_default_executor: Optional[Executor] = None


def execute(job: Job) -> ExecutionResult:
    """Execute job with a process-wide default Executor."""
    global _default_executor
    if _default_executor is None:
        _default_executor = Executor()
    return _default_executor.execute(job)
