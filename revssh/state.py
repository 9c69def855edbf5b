"""Session records persisted as JSON files, one per profile."""

from __future__ import annotations

import json
from pathlib import Path

from revssh.config import sessions_dir
from revssh.session import Session


def _session_path(profile_id: str) -> Path:
    return sessions_dir() / f"{profile_id}.json"


def save_session(session: Session) -> None:
    """Write ``session`` to its file in the sessions directory."""
    directory = sessions_dir()
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise OSError(f"Failed to create sessions directory: {exc}") from exc
    path = directory / f"{session.profile_id}.json"
    content = json.dumps(session.to_dict(), indent=2)
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise OSError(f"Failed to write session file to {path}: {exc}") from exc


def load_session(profile_id: str) -> Session | None:
    """Read the stored session for ``profile_id``, or ``None`` if there is none."""
    path = _session_path(profile_id)
    if not path.exists():
        return None
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise OSError(f"Failed to read session file: {exc}") from exc
    try:
        return Session.from_dict(json.loads(content))
    except ValueError as exc:
        raise ValueError(f"Failed to parse session file: {exc}") from exc


def list_persisted_sessions() -> list[Session]:
    """All readable sessions on disk; files that do not parse are skipped."""
    directory = sessions_dir()
    if not directory.exists():
        return []
    sessions = []
    for path in sorted(directory.iterdir()):
        if path.suffix != ".json":
            continue
        content = path.read_text(encoding="utf-8")
        try:
            sessions.append(Session.from_dict(json.loads(content)))
        except ValueError:
            continue
    return sessions


def remove_session(profile_id: str) -> None:
    """Delete the stored session for ``profile_id`` if there is one."""
    _session_path(profile_id).unlink(missing_ok=True)