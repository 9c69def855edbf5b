"""Command-line interface for managing reverse SSH tunnels."""

from __future__ import annotations

import argparse
import getpass
import logging
import re
import sys
import time
from collections.abc import Iterable, Sequence

from revssh.config import AppConfig, load_config, logs_dir, save_config
from revssh.manager import SessionManager
from revssh.profile import AuthKind, AuthMethod, ForwardRule, Profile
from revssh.session import Session, SessionState

_PORT_TEXT = re.compile(r"\+?[0-9]+")
_POLL_SECONDS = 2.0
_FOLLOW_SECONDS = 0.5
_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

_AUTH_AGENT = "SSH Agent"
_AUTH_KEY = "Private Key File"
_AUTH_PASSWORD = "Password"
_AUTH_OPTIONS = (_AUTH_AGENT, _AUTH_KEY, _AUTH_PASSWORD)


def build_parser() -> argparse.ArgumentParser:
    """The argument parser for all commands."""
    parser = argparse.ArgumentParser(
        prog="reverse-ssh-cli", description="Manage reverse SSH connections"
    )
    commands = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    up = commands.add_parser("up", help="Start a reverse SSH tunnel")
    up.add_argument("id", help="Profile ID")

    down = commands.add_parser("down", help="Stop a reverse SSH tunnel")
    down.add_argument("id", help="Profile ID")

    commands.add_parser("status", help="Show status of tunnels")

    logs = commands.add_parser("logs", help="View logs for a session")
    logs.add_argument("id", help="Profile ID")
    logs.add_argument("-f", "--follow", action="store_true", help="Follow logs")

    profile = commands.add_parser("profile", help="Manage profiles")
    actions = profile.add_subparsers(dest="action", required=True, metavar="ACTION")
    actions.add_parser("add", help="Add a new profile interactively")
    actions.add_parser("list", help="List all profiles")

    return parser


def _status_row(profile_id: str, status: str, pid: str, started: str) -> str:
    return f"{profile_id:<20} {status:<15} {pid:<10} {started:<20}"


def format_status_table(sessions: Iterable[Session]) -> str:
    """Render sessions as the status table, or a notice when there are none."""
    sessions = list(sessions)
    if not sessions:
        return "No active or recent sessions."
    lines = [_status_row("Profile ID", "Status", "PID", "Started At"), "-" * 65]
    for session in sessions:
        pid = "-" if session.pid is None else str(session.pid)
        started = "-" if session.start_time is None else session.start_time.strftime(_TIME_FORMAT)
        lines.append(_status_row(session.profile_id, session.status.state.value, pid, started))
        if session.status.state is SessionState.FAILED:
            lines.append(f"  Error: {session.status.reason}")
    return "\n".join(lines)


def _auth_line(auth: AuthMethod) -> str:
    if auth.kind is AuthKind.AGENT:
        return "    Auth: Agent"
    if auth.kind is AuthKind.IDENTITY_FILE:
        return f"    Auth: Key ({auth.value})"
    return "    Auth: Password (Stored)"


def format_profile_list(config: AppConfig) -> str:
    """Render all profiles with their authentication and forwards."""
    if not config.profiles:
        return "No profiles found. Use 'add' to create one."
    lines = [f"Found {len(config.profiles)} profiles:"]
    for profile_id, profile in config.profiles.items():
        lines.append(f"- [{profile_id}] {profile.user}@{profile.host} (Port: {profile.port})")
        lines.append(_auth_line(profile.auth))
        lines.extend(f"    R: {rule.to_arg_string()}" for rule in profile.forwards)
    return "\n".join(lines)


def run_up(profile_id: str) -> None:
    """Start a tunnel and supervise it until it ends or Ctrl+C is pressed."""
    config = load_config()
    profile = config.get_profile(profile_id)
    if profile is None:
        raise LookupError(f"Profile '{profile_id}' not found")

    print(f"Starting profile '{profile_id}' ({profile.host})")
    manager = SessionManager()
    try:
        manager.start(profile)
    except (OSError, ValueError) as exc:
        print(f"Failed to start session: {exc}", file=sys.stderr)
        raise

    print("Session started. Press Ctrl+C to stop.")
    try:
        while True:
            time.sleep(_POLL_SECONDS)
            session = manager.get_session(profile_id)
            if session is None:
                print("Session state lost?", file=sys.stderr)
                break
            if session.status.state is SessionState.FAILED:
                print(f"Session failed unexpectedly: {session.status.reason}", file=sys.stderr)
                manager.stop(profile_id)
                break
            if session.status.state is SessionState.STOPPED:
                print("Session stopped unexpectedly.", file=sys.stderr)
                break
    except KeyboardInterrupt:
        print("\nReceived Ctrl+C, stopping...")
        manager.stop(profile_id)
        print("Stopped.")


def run_down(profile_id: str) -> None:
    """Stop the tunnel for a profile, reporting failure without raising."""
    manager = SessionManager()
    print(f"Stopping session '{profile_id}'...")
    try:
        manager.stop(profile_id)
    except (OSError, ValueError) as exc:
        print(f"Failed to stop session: {exc}", file=sys.stderr)
    else:
        print("Session stopped.")


def run_status() -> None:
    """Print the status table of known sessions."""
    manager = SessionManager()
    sessions = manager.list_sessions()
    table = format_status_table(sessions)
    print(table)


def run_logs(profile_id: str, follow: bool) -> None:
    """Print a session's log, optionally following it as it grows."""
    log_path = logs_dir() / f"{profile_id}.log"
    if not log_path.exists():
        print(f"No logs found for profile '{profile_id}'.")
        return

    if not follow:
        try:
            content = log_path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise OSError(f"Failed to read log file: {exc}") from exc
        print(content, end="")
        return

    try:
        handle = open(log_path, encoding="utf-8", errors="replace")
    except OSError as exc:
        raise OSError(f"Failed to open log file: {exc}") from exc
    with handle:
        try:
            while True:
                line = handle.readline()
                if line:
                    print(line, end="", flush=True)
                else:
                    time.sleep(_FOLLOW_SECONDS)
        except KeyboardInterrupt:
            pass


def _ask(message: str, default: str | None = None) -> str:
    suffix = f" ({default})" if default is not None else ""
    answer = input(f"{message}{suffix} ").strip()
    if not answer and default is not None:
        return default
    return answer


def _confirm(message: str, default: bool) -> bool:
    hint = "[Y/n]" if default else "[y/N]"
    while True:
        answer = input(f"{message} {hint} ").strip().lower()
        if not answer:
            return default
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False
        print("Please answer 'y' or 'n'.")


def _select(message: str, options: Sequence[str]) -> str:
    print(message)
    for number, option in enumerate(options, start=1):
        print(f"  {number}) {option}")
    while True:
        answer = input("> ").strip()
        if answer in options:
            return answer
        if answer.isdigit() and 1 <= int(answer) <= len(options):
            return options[int(answer) - 1]
        print(f"Please choose a number from 1 to {len(options)}.")


def _parse_port(text: str, default: int) -> int:
    if _PORT_TEXT.fullmatch(text):
        value = int(text)
        if value <= 0xFFFF:
            return value
    return default


def run_profile_add() -> None:
    """Create a profile from interactive answers and save it."""
    print("Creating a new Reverse SSH Profile...")
    print("Unique name for this connection")
    profile_id = _ask("Profile Name (ID):")
    host = _ask("SSH Host IP/Domain:")
    user = _ask("SSH User:")
    port = _parse_port(_ask("SSH Port:", "22"), 22)

    profile = Profile(id=profile_id, host=host, user=user, port=port)

    choice = _select("Authentication Method:", _AUTH_OPTIONS)
    if choice == _AUTH_AGENT:
        profile.auth = AuthMethod.agent()
    elif choice == _AUTH_KEY:
        profile.auth = AuthMethod.identity_file(_ask("Path to private key:"))
    else:
        profile.auth = AuthMethod.password(getpass.getpass("Enter SSH Password: "))

    while _confirm("Add a reverse forward rule (-R)?", True):
        remote_port = _parse_port(_ask("Remote Port (server port to open):"), 8080)
        local_port = _parse_port(_ask("Local Port (device port to forward):"), 8080)
        profile.forwards.append(
            ForwardRule(
                remote_port=remote_port,
                local_port=local_port,
                remote_bind="127.0.0.1",
                local_host="localhost",
            )
        )
        print(f"Added forward: {remote_port} -> {local_port}")

    config = load_config()
    config.add_profile(profile)
    save_config(config)
    print(f"Profile '{profile_id}' saved successfully!")


def run_profile_list() -> None:
    """Print all stored profiles."""
    config = load_config()
    listing = format_profile_list(config)
    print(listing)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line; returns the process exit status."""
    logging.basicConfig(stream=sys.stderr, level=logging.INFO)
    args = build_parser().parse_args(argv)

    try:
        if args.command == "up":
            run_up(args.id)
        elif args.command == "down":
            run_down(args.id)
        elif args.command == "status":
            run_status()
        elif args.command == "logs":
            run_logs(args.id, args.follow)
        elif args.action == "add":
            run_profile_add()
        else:
            run_profile_list()
    except EOFError:
        print("Error: input cancelled", file=sys.stderr)
        return 1
    except (OSError, ValueError, LookupError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())