"""Tunnel session records and their status."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

_EXCESS_FRACTION = re.compile(r"(\.\d{6})\d+")


def _check_small(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 0xFF:
        raise ValueError(f"{name} must be an integer in 0..255, got {value!r}")
    return value


def _format_time(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_time(text: Any) -> datetime:
    if not isinstance(text, str):
        raise ValueError(f"start_time must be a string, got {text!r}")
    cleaned = _EXCESS_FRACTION.sub(r"\1", text.strip())
    if cleaned.endswith(("Z", "z")):
        cleaned = cleaned[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(cleaned)
    except ValueError:
        raise ValueError(f"invalid timestamp '{text}'") from None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class SessionState(Enum):
    """The kind of state a session is in."""

    STOPPED = "Stopped"
    STARTING = "Starting"
    RUNNING = "Running"
    FAILED = "Failed"
    RETRYING = "Retrying"


@dataclass(frozen=True)
class SessionStatus:
    """A session state with the details that belong to it."""

    state: SessionState = SessionState.STOPPED
    reason: str | None = None
    attempt: int | None = None
    max_attempts: int | None = None

    def __post_init__(self) -> None:
        if self.state is SessionState.FAILED:
            if not isinstance(self.reason, str):
                raise ValueError("a failed status needs a reason")
        elif self.reason is not None:
            raise ValueError("only a failed status carries a reason")
        if self.state is SessionState.RETRYING:
            _check_small(self.attempt, "attempt")
            _check_small(self.max_attempts, "max")
        elif self.attempt is not None or self.max_attempts is not None:
            raise ValueError("only a retrying status carries attempt counts")

    @classmethod
    def stopped(cls) -> SessionStatus:
        return cls(SessionState.STOPPED)

    @classmethod
    def starting(cls) -> SessionStatus:
        return cls(SessionState.STARTING)

    @classmethod
    def running(cls) -> SessionStatus:
        return cls(SessionState.RUNNING)

    @classmethod
    def failed(cls, reason: str) -> SessionStatus:
        return cls(SessionState.FAILED, reason=reason)

    @classmethod
    def retrying(cls, attempt: int, max_attempts: int) -> SessionStatus:
        return cls(SessionState.RETRYING, attempt=attempt, max_attempts=max_attempts)

    def to_dict(self) -> dict[str, Any]:
        """Serialize as an adjacently tagged mapping (``state`` / ``details``)."""
        if self.state is SessionState.FAILED:
            return {"state": self.state.value, "details": self.reason}
        if self.state is SessionState.RETRYING:
            return {
                "state": self.state.value,
                "details": {"attempt": self.attempt, "max": self.max_attempts},
            }
        return {"state": self.state.value}

    @classmethod
    def from_dict(cls, data: Any) -> SessionStatus:
        if not isinstance(data, Mapping) or "state" not in data:
            raise ValueError(f"invalid session status: {data!r}")
        try:
            state = SessionState(data["state"])
        except ValueError:
            raise ValueError(f"unknown session state {data['state']!r}") from None
        if state is SessionState.FAILED:
            return cls.failed(data.get("details"))
        if state is SessionState.RETRYING:
            details = data.get("details")
            if not isinstance(details, Mapping) or not {"attempt", "max"} <= details.keys():
                raise ValueError("retrying status needs attempt and max")
            return cls.retrying(details["attempt"], details["max"])
        return cls(state)


@dataclass
class Session:
    """The runtime record of one profile's tunnel."""

    profile_id: str
    status: SessionStatus = field(default_factory=SessionStatus.stopped)
    pid: int | None = None
    start_time: datetime | None = None
    restart_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "profile_id": self.profile_id,
            "status": self.status.to_dict(),
            "pid": self.pid,
            "start_time": None if self.start_time is None else _format_time(self.start_time),
            "restart_count": self.restart_count,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Session:
        if not isinstance(data, Mapping):
            raise ValueError("session must be a mapping")
        for key in ("profile_id", "status", "restart_count"):
            if key not in data:
                raise ValueError(f"session: missing field '{key}'")
        profile_id = data["profile_id"]
        if not isinstance(profile_id, str):
            raise ValueError("session: profile_id must be a string")
        pid = data.get("pid")
        if pid is not None and (
            isinstance(pid, bool) or not isinstance(pid, int) or not 0 <= pid <= 0xFFFFFFFF
        ):
            raise ValueError(f"session: invalid pid {pid!r}")
        restart_count = data["restart_count"]
        if isinstance(restart_count, bool) or not isinstance(restart_count, int) or restart_count < 0:
            raise ValueError(f"session: invalid restart_count {restart_count!r}")
        start = data.get("start_time")
        return cls(
            profile_id=profile_id,
            status=SessionStatus.from_dict(data["status"]),
            pid=pid,
            start_time=None if start is None else _parse_time(start),
            restart_count=restart_count,
        )