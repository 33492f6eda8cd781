from .builtin import is_builtin, try_builtin
from .errors import (
    BuiltinError,
    BuiltinPipeError,
    EndOfInput,
    ExecuteError,
    IncompleteInput,
    Interrupted,
    LineSourceError,
    MalformedInput,
    ParseError,
    ShellError,
)
from .executor import ExecutionResult, Executor, execute
from .model import (
    ExitStatus,
    InheritInput,
    InheritOutput,
    Job,
    JobMode,
    PipeIn,
    PipeOut,
    Process,
    RedirectIn,
    RedirectOut,
    pipeline,
)
from .parser import parse, parse_all, parse_job

__all__ = [
    "parse", "parse_job", "parse_all",
    "execute", "Executor", "ExecutionResult",
    "try_builtin", "is_builtin",
    "Job", "JobMode", "Process", "pipeline", "ExitStatus",
    "InheritInput", "RedirectIn", "PipeIn", "InheritOutput", "RedirectOut", "PipeOut",
    "ShellError", "ParseError", "MalformedInput", "IncompleteInput",
    "BuiltinError", "BuiltinPipeError", "ExecuteError",
    "EndOfInput", "Interrupted", "LineSourceError",
]
