# model.py
from __future__ import annotations

import signal as _signal
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Tuple, Union


class JobMode(str, Enum):
    FOREGROUND = "foreground"
    BACKGROUND = "background"
    SUSPENDED = "suspended"  # reserved, never produced by the parser


# ----------------------------------------------------------------------
# Stream wiring
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class InheritInput:
    """Read from the interpreter's own stdin."""


@dataclass(frozen=True)
class RedirectIn:
    path: str

    def __post_init__(self) -> None:
        if not self.path:
            raise ValueError("redirect path must be non-empty")


@dataclass(frozen=True)
class PipeIn:
    """Read from the previous stage through an anonymous pipe."""


@dataclass(frozen=True)
class InheritOutput:
    """Write to the interpreter's own stdout."""


@dataclass(frozen=True)
class RedirectOut:
    path: str
    append: bool = False

    def __post_init__(self) -> None:
        if not self.path:
            raise ValueError("redirect path must be non-empty")


@dataclass(frozen=True)
class PipeOut:
    """Write into the next stage, which this output owns."""
    next: "Process"


Input = Union[InheritInput, RedirectIn, PipeIn]
Output = Union[InheritOutput, RedirectOut, PipeOut]


# ----------------------------------------------------------------------
# Process / Job
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class Process:
    """One stage of a pipeline: an argument vector plus its stdin/stdout."""
    argv: Tuple[str, ...]
    input: Input = InheritInput()
    output: Output = InheritOutput()

    def __post_init__(self) -> None:
        # argv may be any sequence; store a tuple
        object.__setattr__(self, "argv", tuple(self.argv))
        if not self.argv:
            raise ValueError("argv must contain at least the command name")
        if any(not a for a in self.argv):
            raise ValueError(f"empty argument in {self.argv!r}")
        if isinstance(self.output, PipeOut) and not isinstance(self.output.next.input, PipeIn):
            raise ValueError(
                f"stage after {self.argv[0]!r} must read from the pipe, "
                f"got {self.output.next.input!r}"
            )

    @property
    def name(self) -> str:
        return self.argv[0]

    @property
    def next(self) -> Process | None:
        if isinstance(self.output, PipeOut):
            return self.output.next
        return None

    def __str__(self) -> str:
        parts = list(self.argv)
        if isinstance(self.input, RedirectIn):
            parts += ["<", self.input.path]
        if isinstance(self.output, RedirectOut):
            parts += [">>" if self.output.append else ">", self.output.path]
        elif isinstance(self.output, PipeOut):
            parts += ["|", str(self.output.next)]
        return " ".join(parts)


@dataclass(frozen=True)
class Job:
    """
    One parsed line: the head of a pipeline plus its mode.

    The pipeline is a singly linked chain; each stage owns the rest of it
    through PipeOut.next. stages() gives a flat head-first view.
    """
    head: Process
    mode: JobMode = JobMode.FOREGROUND

    def __post_init__(self) -> None:
        if isinstance(self.head.input, PipeIn):
            raise ValueError("the first stage of a job cannot read from a pipe")

    @property
    def background(self) -> bool:
        return self.mode is JobMode.BACKGROUND

    def stages(self) -> Tuple[Process, ...]:
        return tuple(self)

    def __iter__(self) -> Iterator[Process]:
        stage: Process | None = self.head
        while stage is not None:
            yield stage
            stage = stage.next

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __str__(self) -> str:
        if self.background:
            return f"{self.head} &"
        return str(self.head)


def pipeline(*stages: Process, mode: JobMode = JobMode.FOREGROUND) -> Job:
    """
    Link already-built stages into a Job, tail first.

    The pipe wiring between neighbours is filled in here, so only the head
    may redirect its input and only the tail may redirect its output.
    Mostly useful for building jobs in code and tests:

        pipeline(Process(["ls"]), Process(["wc", "-l"]))
    """
    if not stages:
        raise ValueError("a job needs at least one stage")

    linked: Process | None = None
    for i, stage in reversed(list(enumerate(stages))):
        if linked is not None and not isinstance(stage.output, InheritOutput):
            raise ValueError(f"{stage.name!r} feeds a pipe and cannot redirect its output")
        if i > 0 and not isinstance(stage.input, (InheritInput, PipeIn)):
            raise ValueError(f"{stage.name!r} reads a pipe and cannot redirect its input")
        output = PipeOut(linked) if linked is not None else stage.output
        stage_input = PipeIn() if i > 0 else stage.input
        linked = Process(stage.argv, stage_input, output)
    return Job(linked, mode)


# ----------------------------------------------------------------------
# Exit status
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class ExitStatus:
    """
    Terminal status of a job, as subprocess reports it.

    A negative code -N means the process was killed by signal N.
    """
    code: int

    @property
    def success(self) -> bool:
        return self.code == 0

    @property
    def signal(self) -> int | None:
        return -self.code if self.code < 0 else None

    @property
    def shell_code(self) -> int:
        """Conventional shell encoding: 128 + N for a signal."""
        return 128 + -self.code if self.code < 0 else self.code

    def __str__(self) -> str:
        if self.signal is not None:
            try:
                return f"signal {_signal.Signals(self.signal).name}"
            except ValueError:
                return f"signal {self.signal}"
        return f"exit {self.code}"
