from __future__ import annotations

import signal

import pytest

from pipesh.model import (
    ExitStatus,
    InheritInput,
    Job,
    JobMode,
    PipeIn,
    PipeOut,
    Process,
    RedirectIn,
    RedirectOut,
    pipeline,
)
from pipesh.parser import parse


def test_process_requires_argv():
    with pytest.raises(ValueError):
        Process(())
    with pytest.raises(ValueError):
        Process(("cmd", ""))


def test_argv_is_stored_as_tuple():
    assert Process(["ls", "-l"]).argv == ("ls", "-l")


def test_redirect_path_must_be_non_empty():
    with pytest.raises(ValueError):
        RedirectIn("")
    with pytest.raises(ValueError):
        RedirectOut("", append=True)


def test_head_cannot_read_from_pipe():
    with pytest.raises(ValueError):
        Job(Process(("cmd",), PipeIn()))


def test_piped_stage_must_read_from_pipe():
    with pytest.raises(ValueError):
        Process(("a",), output=PipeOut(Process(("b",), InheritInput())))


def test_models_are_frozen():
    proc = Process(("cmd",))
    with pytest.raises(AttributeError):
        proc.argv = ("other",)


def test_pipeline_builder_matches_parser():
    built = pipeline(
        Process(("cmd0",), RedirectIn("a")),
        Process(("cmd1",)),
        Process(("cmd2", "arg"), output=RedirectOut("b", append=True)),
        mode=JobMode.BACKGROUND,
    )
    assert built == parse("cmd0 < a | cmd1 | cmd2 arg >> b &")


def test_pipeline_builder_rejects_conflicts():
    with pytest.raises(ValueError):
        pipeline(Process(("a",), output=RedirectOut("f")), Process(("b",)))
    with pytest.raises(ValueError):
        pipeline(Process(("a",)), Process(("b",), RedirectIn("f")))
    with pytest.raises(ValueError):
        pipeline()


def test_stages_and_len():
    job = parse("a | b | c")
    assert [s.name for s in job.stages()] == ["a", "b", "c"]
    assert len(job) == 3
    assert job.head.next.next.next is None


def test_exit_status():
    assert ExitStatus(0).success
    assert str(ExitStatus(3)) == "exit 3"
    assert ExitStatus(3).shell_code == 3

    killed = ExitStatus(-signal.SIGKILL)
    assert not killed.success
    assert killed.signal == signal.SIGKILL
    assert killed.shell_code == 128 + signal.SIGKILL
    assert str(killed) == "signal SIGKILL"
