from __future__ import annotations

import os
import signal
import time
from pathlib import Path

import pytest

from pipesh.errors import BuiltinError, BuiltinPipeError, ExecuteError
from pipesh.executor import Child, Executor, execute
from pipesh.model import ExitStatus, Job, Process, RedirectOut
from pipesh.parser import parse


@pytest.fixture
def executor():
    return Executor()


@pytest.fixture(autouse=True)
def restore_cwd(monkeypatch):
    monkeypatch.chdir(os.getcwd())


def run(executor, line):
    return executor.execute(parse(line))


def open_fds():
    return set(os.listdir("/proc/self/fd"))


def test_output_redirect(executor, tmp_path):
    out = tmp_path / "out"
    result = run(executor, f"echo hello world > {out}")
    assert result.status == ExitStatus(0)
    assert out.read_text() == "hello world\n"


def test_truncate_replaces_content(executor, tmp_path):
    out = tmp_path / "out"
    out.write_text("old content that is longer\n")
    run(executor, f"echo new > {out}")
    assert out.read_text() == "new\n"


def test_append(executor, tmp_path):
    out = tmp_path / "out"
    out.write_text("one\n")
    run(executor, f"echo two >> {out}")
    assert out.read_text() == "one\ntwo\n"


def test_append_requires_existing_file(executor, tmp_path):
    out = tmp_path / "missing"
    with pytest.raises(ExecuteError) as info:
        run(executor, f"echo two >> {out}")
    assert info.value.kind == "open"
    assert not out.exists()


def test_input_redirect(executor, tmp_path):
    src = tmp_path / "in"
    src.write_text("shout\n")
    out = tmp_path / "out"
    run(executor, f"tr a-z A-Z < {src} > {out}")
    assert out.read_text() == "SHOUT\n"


def test_three_stage_pipeline(executor, tmp_path):
    src = tmp_path / "in"
    src.write_text("b\na\nc\n")
    out = tmp_path / "out"
    result = run(executor, f"cat < {src} | sort | tr a-z A-Z > {out}")
    assert result.status.success
    assert out.read_text() == "A\nB\nC\n"
    assert len(result.pids) == 3


def test_missing_input_spawns_nothing(executor, tmp_path):
    marker = tmp_path / "marker"
    with pytest.raises(ExecuteError) as info:
        run(executor, f"cat < {tmp_path / 'missing'} | touch {marker}")
    assert info.value.kind == "open"
    assert not marker.exists()


def test_non_zero_exit_is_not_an_error(executor):
    assert run(executor, "false").status == ExitStatus(1)


def test_status_is_the_head_stage(executor):
    assert run(executor, "false | true").status == ExitStatus(1)
    assert run(executor, "true | false").status == ExitStatus(0)


def test_early_exiting_consumer_does_not_hang(executor, tmp_path):
    out = tmp_path / "out"
    result = run(executor, f"yes | head -n 1 > {out}")
    assert out.read_text() == "y\n"
    # yes dies writing into the closed pipe
    assert result.status.signal == signal.SIGPIPE


def test_command_not_found(executor):
    with pytest.raises(ExecuteError) as info:
        run(executor, "pipesh-no-such-command-xyz")
    assert info.value.kind == "spawn"
    assert "command not found" in str(info.value)


def test_failed_spawn_aborts_started_stages(executor):
    start = time.monotonic()
    with pytest.raises(ExecuteError):
        run(executor, "sleep 30 | pipesh-no-such-command-xyz")
    assert time.monotonic() - start < 10


def test_builtin_runs_in_process(executor, tmp_path):
    result = run(executor, f"cd {tmp_path}")
    assert result.status == ExitStatus(0)
    assert result.pids == []
    assert Path.cwd() == tmp_path.resolve()


def test_children_inherit_cwd_changed_by_builtin(executor, tmp_path):
    run(executor, f"cd {tmp_path}")
    run(executor, "pwd > where")
    assert (tmp_path / "where").read_text().strip() == str(tmp_path.resolve())


def test_builtin_failure_is_reported(executor, tmp_path):
    with pytest.raises(BuiltinError):
        run(executor, f"cd {tmp_path / 'missing'}")


def test_builtin_cannot_feed_a_pipe(executor, tmp_path):
    before = Path.cwd()
    with pytest.raises(BuiltinPipeError):
        run(executor, f"cd {tmp_path} | cat")
    # refused before running
    assert Path.cwd() == before


def test_builtin_pipe_error_mid_pipeline_aborts_upstream(executor, tmp_path):
    start = time.monotonic()
    with pytest.raises(BuiltinPipeError):
        run(executor, f"sleep 30 | cd {tmp_path} | cat")
    assert time.monotonic() - start < 10


def test_builtin_can_read_a_pipe(executor, tmp_path):
    result = run(executor, f"echo hi | cd {tmp_path}")
    assert result.status is not None
    assert Path.cwd() == tmp_path.resolve()


@pytest.mark.skipif(not os.path.isdir("/proc/self/fd"), reason="needs /proc")
def test_descriptors_are_released(executor, tmp_path):
    src = tmp_path / "in"
    src.write_text("x\n")
    before = open_fds()
    run(executor, f"cat < {src} | cat | cat > {tmp_path / 'out'}")
    with pytest.raises(ExecuteError):
        run(executor, f"cat < {src} | pipesh-no-such-command-xyz")
    assert open_fds() == before


def test_background_job_is_tracked(executor, tmp_path):
    out = tmp_path / "out"
    result = run(executor, f"echo bg > {out} &")
    assert result.status is None
    assert result.job_id == 1
    assert len(executor.jobs) == 1

    finished = executor.jobs.wait_all()
    assert [(f.id, f.status) for f in finished] == [(1, ExitStatus(0))]
    assert len(executor.jobs) == 0
    assert out.read_text() == "bg\n"


def test_background_jobs_are_numbered(executor):
    first = run(executor, "true &")
    second = run(executor, "true &")
    assert (first.job_id, second.job_id) == (1, 2)
    executor.jobs.wait_all()


def test_reap_does_not_block(executor):
    run(executor, "sleep 30 &")
    start = time.monotonic()
    assert executor.jobs.reap() == []
    assert time.monotonic() - start < 5
    for entry in executor.jobs:
        entry.chain.signal(signal.SIGTERM)
    finished = executor.jobs.wait_all()
    assert finished[0].status.signal == signal.SIGTERM


def test_reap_collects_finished_jobs(executor):
    run(executor, "false &")
    deadline = time.monotonic() + 10
    finished = []
    while not finished and time.monotonic() < deadline:
        finished = executor.jobs.reap()
        time.sleep(0.01)
    assert [(f.id, f.status) for f in finished] == [(1, ExitStatus(1))]
    assert str(finished[0].job) == "false &"


def test_module_level_execute(tmp_path):
    out = tmp_path / "out"
    job = Job(Process(("echo", "direct"), output=RedirectOut(str(out))))
    assert execute(job).status.success
    assert out.read_text() == "direct\n"


@pytest.mark.skipif(
    signal.getsignal(signal.SIGINT) is signal.SIG_IGN,
    reason="children inherit an ignored SIGINT",
)
def test_interrupted_wait_reaps_the_chain(executor, monkeypatch):
    real_wait = Child.wait
    interrupted = []

    def wait_interrupted_once(self):
        if not interrupted:
            interrupted.append(self)
            raise KeyboardInterrupt
        return real_wait(self)

    monkeypatch.setattr(Child, "wait", wait_interrupted_once)
    start = time.monotonic()
    chain = executor.spawn(parse("sleep 30 | sleep 30"))
    status = chain.wait()

    assert status == ExitStatus(-signal.SIGINT)
    assert str(status) == "signal SIGINT"
    assert all(child.popen.poll() is not None for child in chain.children)
    assert time.monotonic() - start < 10


def test_reaping_failure_is_an_execute_error(executor, monkeypatch):
    chain = executor.spawn(parse("true"))
    popen = chain.children[0].popen
    popen.wait()

    def broken_wait(timeout=None):
        raise OSError("wait failed")

    monkeypatch.setattr(popen, "wait", broken_wait)
    with pytest.raises(ExecuteError) as info:
        chain.wait()
    assert info.value.kind == "wait"
    assert info.value.details == {"pid": popen.pid}
