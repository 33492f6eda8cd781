from __future__ import annotations

import pytest

from pipesh.ui.console import Console, set_console


@pytest.fixture(autouse=True)
def console():
    """Fresh debug-off console per test; output goes to sys.stdout/stderr at call time."""
    c = Console()
    set_console(c)
    return c
