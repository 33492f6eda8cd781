# builtin.py
"""
Commands that run inside the interpreter instead of as child processes.

A builtin changes the interpreter's own state (for cd, the working
directory every later child inherits), so spawning it would be useless.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Dict, Sequence

from .errors import BuiltinError

Handler = Callable[[Sequence[str]], None]


def cd(argv: Sequence[str]) -> None:
    """Change the working directory to argv[1], or to the home directory."""
    if len(argv) > 2:
        raise BuiltinError("cd: too many arguments")

    if len(argv) == 1:
        try:
            target = Path.home()
        except RuntimeError as e:
            raise BuiltinError(f"cd: could not determine home directory: {e}") from e
    else:
        target = Path(argv[1])

    try:
        os.chdir(target)
    except FileNotFoundError:
        raise BuiltinError(f"cd: no such file or directory: {target}")
    except NotADirectoryError:
        raise BuiltinError(f"cd: not a directory: {target}")
    except PermissionError:
        raise BuiltinError(f"cd: permission denied: {target}")
    except OSError as e:
        raise BuiltinError(f"cd: {target}: {e.strerror or e}") from e


BUILTINS: Dict[str, Handler] = {
    "cd": cd,
}


def is_builtin(argv: Sequence[str]) -> bool:
    return bool(argv) and argv[0] in BUILTINS


def try_builtin(argv: Sequence[str]) -> bool:
    """
    Run argv as a builtin if its command name is one.

    Returns:
      False if argv[0] is not a builtin (nothing was run),
      True if the builtin ran and succeeded.

    Raises:
      BuiltinError: the builtin ran and failed
    """
    if not is_builtin(argv):
        return False
    BUILTINS[argv[0]](argv)
    return True
