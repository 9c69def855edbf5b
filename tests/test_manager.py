import os
import signal
import stat
import subprocess
import time
from datetime import datetime, timezone

import platformdirs
import pytest

from revssh.config import logs_dir, sessions_dir
from revssh.manager import SessionManager, is_pid_alive, kill_pid
from revssh.profile import Profile
from revssh.session import Session, SessionState, SessionStatus
from revssh.state import load_session, save_session


@pytest.fixture(autouse=True)
def config_home(tmp_path, monkeypatch):
    home = tmp_path / "config"
    home.mkdir()
    monkeypatch.setattr(platformdirs, "user_config_dir", lambda *a, **k: str(home))
    return home


@pytest.fixture
def fake_ssh(tmp_path, monkeypatch):
    bindir = tmp_path / "bin"
    bindir.mkdir()

    def install(body):
        script = bindir / "ssh"
        script.write_text("#!/bin/sh\n" + body)
        script.chmod(script.stat().st_mode | stat.S_IXUSR)
        monkeypatch.setenv("PATH", str(bindir) + os.pathsep + os.environ.get("PATH", ""))

    return install


def _wait_for(predicate, timeout=10.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return predicate()


def _dead_pid():
    process = subprocess.Popen(["true"])
    process.wait()
    return process.pid


def test_is_pid_alive():
    assert is_pid_alive(os.getpid())
    assert not is_pid_alive(_dead_pid())


def test_kill_pid_terminates():
    process = subprocess.Popen(["sleep", "30"])
    kill_pid(process.pid)
    assert process.wait(timeout=10) == -signal.SIGTERM


def test_start_and_stop(fake_ssh):
    fake_ssh("exec sleep 30\n")
    manager = SessionManager()
    manager.start(Profile("demo", "example.com", "user"))

    session = manager.get_session("demo")
    assert session.status.state is SessionState.RUNNING
    assert is_pid_alive(session.pid)
    assert session.start_time is not None
    assert load_session("demo").pid == session.pid

    manager.start(Profile("demo", "example.com", "user"))
    assert manager.get_session("demo").pid == session.pid

    manager.stop("demo")
    stopped = manager.get_session("demo")
    assert stopped.status.state is SessionState.STOPPED
    assert stopped.pid is None and stopped.start_time is None
    assert load_session("demo").status.state is SessionState.STOPPED
    assert _wait_for(lambda: not is_pid_alive(session.pid))


def test_failed_process_is_reported(fake_ssh):
    fake_ssh("echo oops >&2\nexit 3\n")
    manager = SessionManager()
    manager.start(Profile("bad", "example.com", "user"))
    assert _wait_for(
        lambda: manager.get_session("bad").status.state is SessionState.FAILED
    )
    session = manager.get_session("bad")
    assert session.status == SessionStatus.failed("Exited with code: 3")
    assert session.pid is None
    assert load_session("bad").status == session.status
    assert "oops" in (logs_dir() / "bad.log").read_text()


def test_start_skips_when_other_process_runs(fake_ssh):
    fake_ssh("exec sleep 30\n")
    save_session(Session("shared", status=SessionStatus.running(), pid=os.getpid()))
    manager = SessionManager()
    manager.start(Profile("shared", "example.com", "user"))
    assert manager.get_session("shared").pid == os.getpid()
    assert not (logs_dir() / "shared.log").exists()


def test_start_without_ssh(tmp_path, monkeypatch):
    empty = tmp_path / "empty"
    empty.mkdir()
    monkeypatch.setenv("PATH", str(empty))
    manager = SessionManager()
    with pytest.raises(FileNotFoundError):
        manager.start(Profile("x", "example.com", "user"))
    assert manager.get_session("x") is None


def test_get_session_marks_dead_persisted():
    save_session(
        Session(
            "ghost",
            status=SessionStatus.running(),
            pid=_dead_pid(),
            start_time=datetime.now(timezone.utc),
        )
    )
    session = SessionManager().get_session("ghost")
    assert session.status.state is SessionState.STOPPED
    assert session.pid is None
    assert not (sessions_dir() / "ghost.json").exists()


def test_list_sessions_merges_disk_and_local(fake_ssh):
    fake_ssh("exec sleep 30\n")
    save_session(Session("old", status=SessionStatus.running(), pid=_dead_pid()))
    save_session(Session("idle"))
    manager = SessionManager()
    manager.start(Profile("live", "example.com", "user"))
    try:
        listed = {s.profile_id: s for s in manager.list_sessions()}
        assert set(listed) == {"old", "idle", "live"}
        assert listed["old"].status.state is SessionState.STOPPED
        assert listed["old"].pid is None
        assert listed["live"].status.state is SessionState.RUNNING
        assert not (sessions_dir() / "old.json").exists()
    finally:
        manager.stop("live")


def test_stop_persisted_from_other_process():
    process = subprocess.Popen(["sleep", "30"])
    save_session(Session("remote", status=SessionStatus.running(), pid=process.pid))
    SessionManager().stop("remote")
    assert process.wait(timeout=10) == -signal.SIGTERM
    stored = load_session("remote")
    assert stored.status.state is SessionState.STOPPED
    assert stored.pid is None


def test_stop_unknown_does_nothing():
    SessionManager().stop("unknown")
    assert load_session("unknown") is None