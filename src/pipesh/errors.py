# errors.py
from __future__ import annotations

from dataclasses import dataclass, field


class ShellError(Exception):
    """Base class for every failure the interpreter reports to the user."""


# ----------------------------------------------------------------------
# Line source
# ----------------------------------------------------------------------

class EndOfInput(ShellError):
    """The line source is exhausted (Ctrl-D or end of stream)."""

    def __str__(self) -> str:
        return "end of input"


class Interrupted(ShellError):
    """The user interrupted the interpreter (Ctrl-C)."""

    def __str__(self) -> str:
        return "interrupted"


@dataclass
class LineSourceError(ShellError):
    message: str

    def __str__(self) -> str:
        return f"could not read input: {self.message}"


# ----------------------------------------------------------------------
# Parsing
# ----------------------------------------------------------------------

@dataclass
class ParseError(ShellError):
    """
    A line could not be turned into a job.

    position is the byte offset where parsing stopped.
    """
    message: str
    position: int = 0

    def __str__(self) -> str:
        return f"parse error at {self.position}: {self.message}"


class MalformedInput(ParseError):
    """The line is not a valid job and no continuation could make it one."""


class IncompleteInput(ParseError):
    """The line is a valid prefix of a job but ends too early."""


# ----------------------------------------------------------------------
# Builtins
# ----------------------------------------------------------------------

@dataclass
class BuiltinError(ShellError):
    message: str

    def __str__(self) -> str:
        return self.message


class BuiltinPipeError(BuiltinError):
    """A builtin was asked to feed a pipe, which it cannot do."""


# ----------------------------------------------------------------------
# Execution
# ----------------------------------------------------------------------

@dataclass
class ExecuteError(ShellError):
    """
    An OS-level failure while realizing a job.

    kind is one of "open", "pipe", "spawn" or "wait".
    """
    kind: str
    message: str
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"{self.kind}: {self.message}"]
        for k, v in self.details.items():
            parts.append(f"{k}={v}")
        return " ".join(parts)
