"""Supervising ssh tunnel processes and their persisted session records."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import IO

from revssh import state
from revssh.config import logs_dir
from revssh.profile import Profile
from revssh.session import Session, SessionState, SessionStatus
from revssh.spawn import spawn_session

log = logging.getLogger(__name__)

_CHUNK = 65536


def is_pid_alive(pid: int) -> bool:
    """Whether a signal can be delivered to ``pid``."""
    try:
        os.kill(pid, 0)
    except (OSError, OverflowError):
        return False
    return True


def kill_pid(pid: int) -> None:
    """Send SIGTERM to ``pid``, ignoring failures."""
    try:
        os.kill(pid, signal.SIGTERM)
    except (OSError, OverflowError):
        pass


@dataclass(eq=False)
class _Task:
    cancelled: threading.Event = field(default_factory=threading.Event)
    thread: threading.Thread | None = None


def _pump(stream: IO[bytes], log_path: Path) -> None:
    with stream, open(log_path, "ab", buffering=0) as sink:
        for chunk in iter(lambda: stream.read1(_CHUNK), b""):
            sink.write(chunk)


def _exit_status(returncode: int) -> SessionStatus:
    if returncode == 0:
        return SessionStatus.stopped()
    if returncode < 0:
        return SessionStatus.failed(f"Terminated by signal {-returncode}")
    return SessionStatus.failed(f"Exited with code: {returncode}")


def _mark_dead_if_gone(session: Session) -> None:
    if session.pid is not None and not is_pid_alive(session.pid):
        session.status = SessionStatus.stopped()
        session.pid = None
        try:
            state.remove_session(session.profile_id)
        except OSError:
            pass


class SessionManager:
    """Starts, stops and tracks tunnels, sharing state with other processes via disk."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, Session] = {}
        self._tasks: dict[str, _Task] = {}

    def list_sessions(self) -> list[Session]:
        """Sessions on disk merged with this manager's own, which take precedence."""
        try:
            persisted = state.list_persisted_sessions()
        except (OSError, ValueError):
            persisted = []
        with self._lock:
            merged = []
            for session in persisted:
                local = self._sessions.get(session.profile_id)
                if local is not None:
                    merged.append(Session.from_dict(local.to_dict()))
                else:
                    _mark_dead_if_gone(session)
                    merged.append(session)
            known = {session.profile_id for session in merged}
            merged.extend(
                Session.from_dict(local.to_dict())
                for profile_id, local in self._sessions.items()
                if profile_id not in known
            )
            return merged

    def get_session(self, profile_id: str) -> Session | None:
        """The session for ``profile_id``, from memory or else from disk."""
        with self._lock:
            local = self._sessions.get(profile_id)
            if local is not None:
                return Session.from_dict(local.to_dict())
            try:
                persisted = state.load_session(profile_id)
            except (OSError, ValueError):
                return None
            if persisted is not None:
                _mark_dead_if_gone(persisted)
            return persisted

    def start(self, profile: Profile) -> None:
        """Start a tunnel for ``profile`` unless one is already running."""
        with self._lock:
            profile_id = profile.id
            current = self._sessions.get(profile_id)
            if current is not None and current.status.state in (
                SessionState.RUNNING,
                SessionState.STARTING,
            ):
                return
            try:
                persisted = state.load_session(profile_id)
            except (OSError, ValueError):
                persisted = None
            if persisted is not None and persisted.pid is not None and is_pid_alive(persisted.pid):
                return

            process, askpass = spawn_session(profile)
            session = Session(
                profile_id=profile_id,
                status=SessionStatus.running(),
                pid=process.pid,
                start_time=datetime.now(timezone.utc),
            )
            try:
                state.save_session(session)
                self._sessions[profile_id] = session
                directory = logs_dir()
                directory.mkdir(parents=True, exist_ok=True)
            except OSError:
                process.kill()
                process.wait()
                if askpass is not None:
                    askpass.unlink(missing_ok=True)
                raise
            log_path = directory / f"{profile_id}.log"

            task = _Task()
            task.thread = threading.Thread(
                target=self._monitor,
                args=(profile_id, process, askpass, log_path, task),
                name=f"revssh-monitor-{profile_id}",
                daemon=True,
            )
            self._tasks[profile_id] = task
            task.thread.start()

    def _monitor(
        self,
        profile_id: str,
        process: subprocess.Popen,
        askpass: Path | None,
        log_path: Path,
        task: _Task,
    ) -> None:
        pumps = [
            threading.Thread(target=_pump, args=(stream, log_path), daemon=True)
            for stream in (process.stdout, process.stderr)
            if stream is not None
        ]
        for pump in pumps:
            pump.start()
        try:
            returncode = process.wait()
            for pump in pumps:
                pump.join(timeout=5)
        finally:
            if askpass is not None:
                askpass.unlink(missing_ok=True)

        with self._lock:
            if task.cancelled.is_set():
                return
            session = self._sessions.get(profile_id)
            if session is not None:
                session.status = _exit_status(returncode)
                session.pid = None
                session.start_time = None
                try:
                    state.save_session(session)
                except OSError as exc:
                    log.warning("Could not persist session %s: %s", profile_id, exc)
            if self._tasks.get(profile_id) is task:
                del self._tasks[profile_id]

    def stop(self, profile_id: str) -> None:
        """Stop the tunnel for ``profile_id``, whether this process started it or not."""
        with self._lock:
            task = self._tasks.pop(profile_id, None)
            if task is not None:
                task.cancelled.set()

            session = self._sessions.get(profile_id)
            if session is None:
                try:
                    session = state.load_session(profile_id)
                except (OSError, ValueError):
                    session = None
                if session is None:
                    return
            if session.pid is not None:
                kill_pid(session.pid)
            session.status = SessionStatus.stopped()
            session.pid = None
            session.start_time = None
            state.save_session(session)