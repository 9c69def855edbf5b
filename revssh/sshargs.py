"""Building the ssh command line for a profile and locating the ssh client."""

from __future__ import annotations

import shutil
from collections.abc import Iterable
from pathlib import Path

from revssh.profile import AuthKind, Profile
from revssh.redact import REDACTED


def build_ssh_args(profile: Profile) -> list[str]:
    """Return the ssh arguments that open the profile's reverse forwards."""
    args: list[str] = []

    if profile.auth.kind is AuthKind.IDENTITY_FILE:
        args += ["-i", profile.auth.value]

    args += ["-p", str(profile.port)]

    args += ["-o", "ExitOnForwardFailure=yes"]
    args += ["-o", f"ServerAliveInterval={profile.advanced.server_alive_interval}"]
    args += ["-o", f"ServerAliveCountMax={profile.advanced.server_alive_count_max}"]

    # Batch mode would make password prompts fail at once.
    batch = "no" if profile.auth.kind is AuthKind.PASSWORD else "yes"
    args += ["-o", f"BatchMode={batch}"]

    args += ["-o", "StrictHostKeyChecking=accept-new"]

    for rule in profile.forwards:
        args += ["-R", rule.to_arg_string()]

    args.append("-N")

    if profile.advanced.custom_args is not None:
        args.extend(profile.advanced.custom_args)

    args.append(f"{profile.user}@{profile.host}")
    return args


def redact_ssh_args(args: Iterable[str]) -> list[str]:
    """Return a copy of ``args`` with the value after each ``-i`` hidden."""
    redacted: list[str] = []
    redact_next = False
    for arg in args:
        if redact_next:
            redacted.append(REDACTED)
            redact_next = False
        else:
            redacted.append(arg)
            redact_next = arg == "-i"
    return redacted


def find_ssh_binary() -> Path:
    """Locate ``ssh`` on the PATH."""
    found = shutil.which("ssh")
    if found is None:
        raise FileNotFoundError("Could not find 'ssh' binary in PATH")
    return Path(found)