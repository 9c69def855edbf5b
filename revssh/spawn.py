"""Starting the ssh client for a profile."""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from pathlib import Path

from revssh.profile import AuthKind, Profile
from revssh.sshargs import build_ssh_args, find_ssh_binary, redact_ssh_args

log = logging.getLogger(__name__)


def askpass_script(secret: str) -> str:
    """A shell script that prints ``secret``, for use as ``SSH_ASKPASS``."""
    quoted = secret.replace("'", "'\\''")
    return f"#!/bin/sh\necho '{quoted}'\n"


def _write_askpass(secret: str) -> Path:
    fd, name = tempfile.mkstemp(prefix="revssh-askpass-")
    path = Path(name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(askpass_script(secret))
        path.chmod(0o700)
    except OSError as exc:
        path.unlink(missing_ok=True)
        raise OSError(f"Failed to write askpass script: {exc}") from exc
    return path


def spawn_session(profile: Profile) -> tuple[subprocess.Popen, Path | None]:
    """Start ssh for ``profile``.

    Returns the process, whose stdout and stderr are pipes, and the path of the
    askpass script for password profiles; the caller removes that file once the
    process has ended.
    """
    ssh_path = find_ssh_binary()
    args = build_ssh_args(profile)
    log.debug("Spawning: %s %s", ssh_path, redact_ssh_args(args))

    env = None
    askpass: Path | None = None
    if profile.auth.kind is AuthKind.PASSWORD:
        askpass = _write_askpass(profile.auth.value)
        env = {**os.environ, "SSH_ASKPASS": str(askpass), "DISPLAY": ":0"}

    try:
        process = subprocess.Popen(
            [str(ssh_path), *args],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            env=env,
        )
    except OSError as exc:
        if askpass is not None:
            askpass.unlink(missing_ok=True)
        raise OSError(f"Failed to spawn SSH process: {exc}") from exc
    return process, askpass