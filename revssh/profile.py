"""Connection profiles: authentication, reverse forwards and advanced SSH options."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DEFAULT_PORT = 22
DEFAULT_BIND = "127.0.0.1"
DEFAULT_LOCAL_HOST = "localhost"
DEFAULT_ALIVE_INTERVAL = 20
DEFAULT_ALIVE_COUNT = 3


def _require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a mapping, got {type(data).__name__}")
    return data


def _require_str(data: Mapping[str, Any], key: str, what: str) -> str:
    try:
        value = data[key]
    except KeyError:
        raise ValueError(f"{what}: missing field '{key}'") from None
    if not isinstance(value, str):
        raise ValueError(f"{what}: field '{key}' must be a string")
    return value


def _check_uint(value: Any, name: str, upper: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < 0 or (upper is not None and value > upper):
        raise ValueError(f"{name} out of range: {value}")
    return value


def _check_port(value: Any, name: str) -> int:
    return _check_uint(value, name, 0xFFFF)


class AuthKind(Enum):
    """How the SSH client authenticates."""

    AGENT = "Agent"
    IDENTITY_FILE = "IdentityFile"
    PASSWORD = "Password"


@dataclass(frozen=True)
class AuthMethod:
    """An authentication method; ``value`` holds a key path or a password."""

    kind: AuthKind = AuthKind.AGENT
    value: str | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.kind is AuthKind.AGENT:
            if self.value is not None:
                raise ValueError("Agent authentication takes no value")
        elif not isinstance(self.value, str):
            raise ValueError(f"{self.kind.value} authentication needs a string value")

    @classmethod
    def agent(cls) -> AuthMethod:
        return cls(AuthKind.AGENT)

    @classmethod
    def identity_file(cls, path: str) -> AuthMethod:
        return cls(AuthKind.IDENTITY_FILE, path)

    @classmethod
    def password(cls, secret: str) -> AuthMethod:
        return cls(AuthKind.PASSWORD, secret)

    def __repr__(self) -> str:
        if self.kind is AuthKind.AGENT:
            return "Agent"
        if self.kind is AuthKind.IDENTITY_FILE:
            return f"IdentityFile({self.value!r})"
        return "Password([REDACTED])"

    __str__ = __repr__

    def to_dict(self) -> dict[str, Any]:
        """Serialize as an adjacently tagged mapping (``type`` / ``value``)."""
        if self.kind is AuthKind.AGENT:
            return {"type": self.kind.value}
        return {"type": self.kind.value, "value": self.value}

    @classmethod
    def from_dict(cls, data: Any) -> AuthMethod:
        data = _require_mapping(data, "auth")
        tag = _require_str(data, "type", "auth")
        try:
            kind = AuthKind(tag)
        except ValueError:
            raise ValueError(f"unknown authentication type '{tag}'") from None
        if kind is AuthKind.AGENT:
            return cls.agent()
        return cls(kind, _require_str(data, "value", "auth"))


@dataclass(kw_only=True)
class ForwardRule:
    """A reverse forward: a port on the remote server to a local destination."""

    remote_port: int
    local_port: int
    remote_bind: str = DEFAULT_BIND
    local_host: str = DEFAULT_LOCAL_HOST

    def __post_init__(self) -> None:
        _check_port(self.remote_port, "remote_port")
        _check_port(self.local_port, "local_port")

    def to_arg_string(self) -> str:
        """The ``-R`` argument: ``bind_address:remote_port:local_host:local_port``."""
        return f"{self.remote_bind}:{self.remote_port}:{self.local_host}:{self.local_port}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "remote_port": self.remote_port,
            "remote_bind": self.remote_bind,
            "local_host": self.local_host,
            "local_port": self.local_port,
        }

    @classmethod
    def from_dict(cls, data: Any) -> ForwardRule:
        data = _require_mapping(data, "forward")
        for key in ("remote_port", "local_port"):
            if key not in data:
                raise ValueError(f"forward: missing field '{key}'")
        remote_bind = data.get("remote_bind", DEFAULT_BIND)
        local_host = data.get("local_host", DEFAULT_LOCAL_HOST)
        if not isinstance(remote_bind, str) or not isinstance(local_host, str):
            raise ValueError("forward: remote_bind and local_host must be strings")
        return cls(
            remote_port=data["remote_port"],
            local_port=data["local_port"],
            remote_bind=remote_bind,
            local_host=local_host,
        )


@dataclass
class AdvancedOptions:
    """Keep-alive settings and extra raw SSH arguments."""

    server_alive_interval: int = DEFAULT_ALIVE_INTERVAL
    server_alive_count_max: int = DEFAULT_ALIVE_COUNT
    custom_args: list[str] | None = None

    def __post_init__(self) -> None:
        _check_uint(self.server_alive_interval, "server_alive_interval")
        _check_uint(self.server_alive_count_max, "server_alive_count_max")
        if self.custom_args is not None:
            if not isinstance(self.custom_args, list) or not all(
                isinstance(arg, str) for arg in self.custom_args
            ):
                raise ValueError("custom_args must be a list of strings")

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "server_alive_interval": self.server_alive_interval,
            "server_alive_count_max": self.server_alive_count_max,
        }
        if self.custom_args is not None:
            result["custom_args"] = list(self.custom_args)
        return result

    @classmethod
    def from_dict(cls, data: Any) -> AdvancedOptions:
        data = _require_mapping(data, "advanced")
        custom = data.get("custom_args")
        return cls(
            server_alive_interval=data.get("server_alive_interval", DEFAULT_ALIVE_INTERVAL),
            server_alive_count_max=data.get("server_alive_count_max", DEFAULT_ALIVE_COUNT),
            custom_args=list(custom) if isinstance(custom, (list, tuple)) else custom,
        )


@dataclass
class Profile:
    """A named reverse-SSH connection."""

    id: str
    host: str
    user: str
    port: int = DEFAULT_PORT
    auth: AuthMethod = field(default_factory=AuthMethod.agent)
    forwards: list[ForwardRule] = field(default_factory=list)
    advanced: AdvancedOptions = field(default_factory=AdvancedOptions)

    def __post_init__(self) -> None:
        _check_port(self.port, "port")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "auth": self.auth.to_dict(),
            "forwards": [rule.to_dict() for rule in self.forwards],
            "advanced": self.advanced.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> Profile:
        data = _require_mapping(data, "profile")
        forwards = data.get("forwards", [])
        if not isinstance(forwards, (list, tuple)):
            raise ValueError("profile: forwards must be a list")
        return cls(
            id=_require_str(data, "id", "profile"),
            host=_require_str(data, "host", "profile"),
            user=_require_str(data, "user", "profile"),
            port=data.get("port", DEFAULT_PORT),
            auth=AuthMethod.from_dict(data["auth"]) if "auth" in data else AuthMethod.agent(),
            forwards=[ForwardRule.from_dict(item) for item in forwards],
            advanced=(
                AdvancedOptions.from_dict(data["advanced"])
                if "advanced" in data
                else AdvancedOptions()
            ),
        )