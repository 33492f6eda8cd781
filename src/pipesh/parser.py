# parser.py
"""
Turn one line of input into a Job.

Syntax (blanks between tokens are insignificant):

    token        := byte+  (anything but < > | & space tab ; CR LF)
    arg_list     := token+
    redirect_in  := "<" token
    redirect_out := (">" | ">>") token
    process      := arg_list (redirect_in redirect_out? | redirect_out redirect_in?)?
    pipeline     := process ("|" process)*
    job          := pipeline "&"? end_of_job
    end_of_job   := end-of-input | (";" | CR | LF)+

A stage that feeds a pipe cannot redirect its output and a stage that reads
a pipe cannot redirect its input.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, NoReturn, Optional, Tuple, Union

from .errors import IncompleteInput, MalformedInput
from .model import (
    InheritInput,
    InheritOutput,
    Input,
    Job,
    JobMode,
    Output,
    PipeIn,
    PipeOut,
    Process,
    RedirectIn,
    RedirectOut,
)

BLANKS = b" \t"
JOB_END = b";\r\n"
OPERATORS = b"<>|&"
DELIMITERS = BLANKS + JOB_END + OPERATORS


class TokenKind(str, Enum):
    WORD = "word"
    REDIRECT_IN = "<"
    REDIRECT_OUT = ">"
    REDIRECT_APPEND = ">>"
    PIPE = "|"
    BACKGROUND = "&"
    END = "end of job"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    start: int
    end: int


# ----------------------------------------------------------------------
# Scanner
# ----------------------------------------------------------------------

def _as_bytes(data: Union[bytes, str]) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def _scan(data: bytes) -> Iterator[Token]:
    """Yield tokens lazily so a bad byte in a later job does not fail an earlier one."""
    i = 0
    n = len(data)
    while i < n:
        c = data[i:i + 1]
        if c in BLANKS:
            i += 1
            continue

        if c in JOB_END:
            j = i
            while j < n and data[j:j + 1] in JOB_END:
                j += 1
            yield Token(TokenKind.END, data[i:j].decode("ascii"), i, j)
            i = j
            continue

        if c == b">":
            if data[i + 1:i + 2] == b">":
                yield Token(TokenKind.REDIRECT_APPEND, ">>", i, i + 2)
                i += 2
            else:
                yield Token(TokenKind.REDIRECT_OUT, ">", i, i + 1)
                i += 1
            continue

        if c in OPERATORS:
            yield Token(TokenKind(c.decode("ascii")), c.decode("ascii"), i, i + 1)
            i += 1
            continue

        j = i
        while j < n and data[j:j + 1] not in DELIMITERS:
            j += 1
        raw = data[i:j]
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedInput(f"invalid UTF-8 in {raw!r}", i + e.start) from e
        yield Token(TokenKind.WORD, text, i, j)
        i = j


def tokenize(data: Union[bytes, str]) -> List[Token]:
    """Split a line into tokens. Mostly useful for diagnostics."""
    return list(_scan(_as_bytes(data)))


# ----------------------------------------------------------------------
# Parser
# ----------------------------------------------------------------------

class _Parser:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self._tokens = _scan(data)
        self._peeked: Optional[Token] = None
        self._done = False
        self.pos = 0

    # -- token stream --------------------------------------------------

    def peek(self) -> Optional[Token]:
        if self._peeked is None and not self._done:
            self._peeked = next(self._tokens, None)
            if self._peeked is None:
                self._done = True
        return self._peeked

    def peek_kind(self) -> Optional[TokenKind]:
        tok = self.peek()
        return tok.kind if tok else None

    def advance(self) -> Token:
        tok = self.peek()
        assert tok is not None
        self._peeked = None
        self.pos = tok.end
        return tok

    def fail(self, expected: str) -> NoReturn:
        """Raise the right ParseError for 'expected X, found <next token>'."""
        tok = self.peek()
        if tok is None:
            raise IncompleteInput(f"expected {expected}, found end of input", len(self.data))
        found = "';'/newline" if tok.kind is TokenKind.END else repr(tok.text)
        raise MalformedInput(f"expected {expected}, found {found}", tok.start)

    def word(self, expected: str) -> str:
        if self.peek_kind() is not TokenKind.WORD:
            self.fail(expected)
        return self.advance().text

    # -- grammar -------------------------------------------------------

    def job(self) -> Job:
        head = self.pipeline()

        mode = JobMode.FOREGROUND
        if self.peek_kind() is TokenKind.BACKGROUND:
            self.advance()
            mode = JobMode.BACKGROUND

        if self.peek_kind() is TokenKind.END:
            self.advance()
        elif self.peek() is not None:
            self.fail("';', newline or end of input")

        return Job(head, mode)

    def pipeline(self) -> Process:
        stages: List[Tuple[List[str], Input, Output]] = [self.process(piped_in=False)]

        while self.peek_kind() is TokenKind.PIPE:
            pipe = self.advance()
            _argv, _input, output = stages[-1]
            if not isinstance(output, InheritOutput):
                raise MalformedInput(
                    f"{_argv[0]!r} redirects its output and cannot also feed a pipe",
                    pipe.start,
                )
            stages.append(self.process(piped_in=True))

        # link tail first: every stage owns the rest of the pipeline
        linked: Optional[Process] = None
        for argv, stage_input, output in reversed(stages):
            if linked is not None:
                output = PipeOut(linked)
            linked = Process(argv, stage_input, output)
        assert linked is not None
        return linked

    def process(self, piped_in: bool) -> Tuple[List[str], Input, Output]:
        argv: List[str] = []
        while self.peek_kind() is TokenKind.WORD:
            argv.append(self.advance().text)
        if not argv:
            self.fail("a command")

        stage_input: Optional[Input] = None
        output: Optional[Output] = None

        while self.peek_kind() in (
            TokenKind.REDIRECT_IN,
            TokenKind.REDIRECT_OUT,
            TokenKind.REDIRECT_APPEND,
        ):
            op = self.advance()
            if op.kind is TokenKind.REDIRECT_IN:
                if piped_in:
                    raise MalformedInput(
                        f"{argv[0]!r} reads from a pipe and cannot also redirect its input",
                        op.start,
                    )
                if stage_input is not None:
                    raise MalformedInput("more than one input redirection", op.start)
                stage_input = RedirectIn(self.word("a file name after '<'"))
            else:
                if output is not None:
                    raise MalformedInput("more than one output redirection", op.start)
                path = self.word(f"a file name after '{op.text}'")
                output = RedirectOut(path, append=op.kind is TokenKind.REDIRECT_APPEND)

        if self.peek_kind() is TokenKind.WORD:
            tok = self.peek()
            raise MalformedInput(f"unexpected argument {tok.text!r} after redirection", tok.start)

        if stage_input is None:
            stage_input = PipeIn() if piped_in else InheritInput()
        return argv, stage_input, output or InheritOutput()


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def parse_job(data: Union[bytes, str]) -> Tuple[Job, bytes]:
    """
    Parse one job from the start of data.

    Returns:
      (job, remainder) where remainder is everything after the job's
      terminating ';' / CR / LF run.

    Raises:
      MalformedInput: the input can never become a valid job
      IncompleteInput: the input is a valid prefix that ends too early
    """
    raw = _as_bytes(data)
    parser = _Parser(raw)
    job = parser.job()
    return job, raw[parser.pos:]


def parse(line: Union[bytes, str]) -> Job:
    """Parse a line that holds exactly one job."""
    job, rest = parse_job(line)
    tail = _Parser(rest)
    while tail.peek_kind() is TokenKind.END:
        tail.advance()
    leftover = tail.peek()
    if leftover is not None:
        raise MalformedInput(
            f"unexpected {leftover.text!r} after end of job",
            len(_as_bytes(line)) - len(rest) + leftover.start,
        )
    return job


def parse_all(data: Union[bytes, str]) -> List[Job]:
    """Parse a ';' / newline separated sequence of jobs, skipping empty ones."""
    raw = _as_bytes(data)
    jobs: List[Job] = []
    offset = 0
    while True:
        parser = _Parser(raw[offset:])
        while parser.peek_kind() is TokenKind.END:
            parser.advance()
        if parser.peek() is None:
            return jobs
        try:
            job = parser.job()
        except (IncompleteInput, MalformedInput) as e:
            e.position += offset
            raise
        jobs.append(job)
        offset += parser.pos
