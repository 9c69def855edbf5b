# revssh

Keep reverse SSH tunnels (`ssh -R`) running from a device to a server, and
manage them from the command line or over a small HTTP API.

Each connection is described by a *profile*: the server to reach, how to
authenticate, and which remote ports to forward back to local services.
`revssh` starts the system `ssh` client for a profile, records the session
on disk so other `revssh` processes can see and stop it, and appends the
client's output to a per-profile log file.

## Requirements

- Python 3.11 or later
- An OpenSSH `ssh` client on `PATH`
- A POSIX system (sessions are tracked and stopped by process id)

## Installation

```sh
pip install revssh
```

This installs two commands: `revssh` and `revssh-web`.

## Command line

```sh
revssh --help
```

### Profiles

Create a profile interactively:

```sh
revssh profile add
```

You are asked for a profile name, the SSH host, user and port (default 22),
an authentication method (SSH agent, private key file, or password; choose by
number or by name), and any number of reverse forward rules. Each rule binds
a remote port on `127.0.0.1` of the server and forwards it to a port on
`localhost` of this machine. A port answer that is not a number from 0 to
65535 falls back to 22 for the SSH port and 8080 for forward ports.

List saved profiles with their authentication method and forwards:

```sh
revssh profile list
```

### Tunnels

Start a tunnel and keep it in the foreground until Ctrl+C:

```sh
revssh up my-vps
```

The session is checked every two seconds; if the `ssh` client exits or
fails, `revssh up` reports it and returns. If the profile's tunnel is already
running (in this or another process), no second `ssh` is started.

Stop a tunnel, including one started by another `revssh` process (its `ssh`
client is sent SIGTERM):

```sh
revssh down my-vps
```

Show the known sessions with their status, process id and start time, and
the reason for any failure:

```sh
revssh status
```

Sessions on disk whose process is no longer alive are shown as stopped and
their record is removed.

Print the log of a profile's `ssh` client, or follow it as it grows:

```sh
revssh logs my-vps
revssh logs my-vps --follow
```

The commands exit with status 1 and print `Error: ...` when a profile is
missing or a file cannot be read, written or parsed.

## Web API

```sh
revssh-web --host 127.0.0.1 --port 3000
```

The bind address defaults to `127.0.0.1:3000` and can also be set with the
`HOST` and `PORT` environment variables. The host must be an IP address.
CORS is open to all origins.

| Method | Path                         | Purpose                                   |
|--------|------------------------------|-------------------------------------------|
| GET    | `/`                          | Placeholder landing page                  |
| GET    | `/health`                    | `{"status": "ok", "version": "0.1.0"}`    |
| GET    | `/api/profiles`              | List all profiles                         |
| POST   | `/api/profiles`              | Create or replace a profile (201)         |
| GET    | `/api/profiles/{id}`         | Fetch one profile (404 if missing)        |
| DELETE | `/api/profiles/{id}`         | Delete a profile (404 if missing)         |
| GET    | `/api/sessions`              | List sessions                             |
| POST   | `/api/sessions/{id}/start`   | Start the tunnel for a profile            |
| POST   | `/api/sessions/{id}/stop`    | Stop the tunnel for a profile             |
| WS     | `/ws`                        | Pushes `sessions_update` every 2 seconds  |

A profile posted with a malformed JSON body is answered with 400, one that
is not a valid profile with 422. Errors are returned as `{"error": "..."}`.
Interactive API documentation is served at `/swagger-ui` and the OpenAPI
document at `/api-docs/openapi.json`.

The application can also be built in code, for example to mount it in
another ASGI server:

```python
from revssh.web import AppState, create_app

app = create_app(AppState())
```

## Configuration

Profiles live in `config.toml` inside the `reverse-ssh-interface` directory
of the user's configuration directory (for example
`~/.config/reverse-ssh-interface/` on Linux). Session records are kept as
JSON in its `sessions/` subdirectory and `ssh` output in
`logs/<profile id>.log`.

A profile written by hand looks like this:

```toml
[profiles.my-vps]
id = "my-vps"
host = "vps.example.com"
port = 22
user = "deploy"

[profiles.my-vps.auth]
type = "IdentityFile"
value = "/home/deploy/.ssh/id_ed25519"

[[profiles.my-vps.forwards]]
remote_port = 8080
remote_bind = "127.0.0.1"
local_host = "localhost"
local_port = 80

[profiles.my-vps.advanced]
server_alive_interval = 20
server_alive_count_max = 3
```

`port`, `auth`, `forwards` and `advanced` may be omitted; they default to
port 22, the SSH agent, no forwards, and a keep-alive of 20 seconds with
3 missed replies allowed. In a forward, `remote_bind` defaults to
`127.0.0.1` and `local_host` to `localhost`. For agent authentication use
`auth = { type = "Agent" }`. `advanced.custom_args` is an optional list of
extra arguments passed to `ssh` as given, just before the destination.

Password authentication (`type = "Password"`) stores the password in
`config.toml` in plain text and hands it to `ssh` through a temporary
`SSH_ASKPASS` script that is removed when the client exits; prefer an agent
or a key file where you can.

The `ssh` client is always started with `-N`, `ExitOnForwardFailure=yes`,
`StrictHostKeyChecking=accept-new`, and `BatchMode=yes` (`BatchMode=no` for
password authentication). In debug logging the key file path is replaced
with `[REDACTED]`.

## Using the library

```python
from revssh.config import load_config
from revssh.manager import SessionManager
from revssh.sshargs import build_ssh_args

config = load_config()
profile = config.get_profile("my-vps")
print(build_ssh_args(profile))

manager = SessionManager()
manager.start(profile)
print(manager.get_session("my-vps"))
manager.stop("my-vps")
```

The modules are `revssh.profile` (profiles, forwards, authentication),
`revssh.session` (session records and status), `revssh.config` (paths and
the profile store), `revssh.sshargs` and `revssh.spawn` (building and
starting the `ssh` command), `revssh.state` (session files), `revssh.manager`
(supervision), `revssh.cli` and `revssh.web`.

## What it does not do

- A tunnel whose `ssh` client exits is not restarted; its session is marked
  stopped or failed. The `Retrying` status and the `restart_count` field are
  read and written but never set by the manager.
- The web server has no frontend; `/` is a placeholder page.
- Passwords are not kept in a system keyring, only in `config.toml`.

## Running the tests

From a checkout of the source:

```sh
pip install -e ".[test]"
pytest
```