"""HTTP and WebSocket API for managing profiles and tunnel sessions."""

from __future__ import annotations

import argparse
import asyncio
import ipaddress
import json
import logging
import os
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import uvicorn
from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse

from revssh.config import load_config, save_config
from revssh.manager import SessionManager
from revssh.profile import Profile

VERSION = "0.1.0"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000
UPDATE_INTERVAL = 2.0

INDEX_HTML = (
    "<h1>Reverse SSH Interface</h1><p>Frontend not yet built. Use API endpoints.</p>"
)

log = logging.getLogger(__name__)


@dataclass
class AppState:
    """State shared by all request handlers."""

    session_manager: SessionManager = field(default_factory=SessionManager)
    update_interval: float = UPDATE_INTERVAL


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message})


def create_app(state: AppState | None = None) -> FastAPI:
    """Build the application with all routes bound to ``state``."""
    state = state if state is not None else AppState()
    app = FastAPI(
        title="Reverse SSH Interface API",
        version=VERSION,
        docs_url="/swagger-ui",
        openapi_url="/api-docs/openapi.json",
        redoc_url=None,
    )
    app.state.app_state = state
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    tags = ["reverse-ssh"]

    @app.get("/", response_class=HTMLResponse, include_in_schema=False)
    def index() -> HTMLResponse:
        return HTMLResponse(INDEX_HTML)

    @app.get("/health", tags=tags)
    def health() -> dict[str, str]:
        return {"status": "ok", "version": VERSION}

    @app.get("/api/profiles", tags=tags)
    def list_profiles() -> Any:
        try:
            config = load_config()
        except (OSError, ValueError) as exc:
            return _error(500, str(exc))
        return [profile.to_dict() for profile in config.profiles.values()]

    @app.post("/api/profiles", status_code=201, tags=tags)
    async def create_profile(request: Request) -> Any:
        try:
            body = await request.json()
        except ValueError as exc:
            return _error(400, f"Invalid JSON body: {exc}")
        try:
            profile = Profile.from_dict(body)
        except (ValueError, TypeError) as exc:
            return _error(422, str(exc))
        return await run_in_threadpool(_store_profile, profile)

    def _store_profile(profile: Profile) -> JSONResponse:
        try:
            config = load_config()
        except (OSError, ValueError) as exc:
            return _error(500, f"Failed to load config: {exc}")
        config.add_profile(profile)
        try:
            save_config(config)
        except (OSError, ValueError) as exc:
            return _error(500, f"Failed to save config: {exc}")
        return JSONResponse(status_code=201, content=profile.to_dict())

    @app.get("/api/profiles/{profile_id}", tags=tags)
    def get_profile(profile_id: str) -> Any:
        try:
            config = load_config()
        except (OSError, ValueError) as exc:
            return _error(500, str(exc))
        profile = config.get_profile(profile_id)
        if profile is None:
            return _error(404, "Profile not found")
        return profile.to_dict()

    @app.delete("/api/profiles/{profile_id}", tags=tags)
    def delete_profile(profile_id: str) -> Any:
        try:
            config = load_config()
        except (OSError, ValueError) as exc:
            return _error(500, str(exc))
        if config.remove_profile(profile_id) is None:
            return _error(404, "Profile not found")
        try:
            save_config(config)
        except (OSError, ValueError) as exc:
            return _error(500, f"Failed to save config: {exc}")
        return {"status": "deleted"}

    @app.get("/api/sessions", tags=tags)
    def list_sessions() -> list[dict[str, Any]]:
        return [session.to_dict() for session in state.session_manager.list_sessions()]

    @app.post("/api/sessions/{profile_id}/start", tags=tags)
    def start_session(profile_id: str) -> Any:
        try:
            config = load_config()
        except (OSError, ValueError) as exc:
            return _error(500, str(exc))
        profile = config.get_profile(profile_id)
        if profile is None:
            return _error(404, "Profile not found")
        try:
            state.session_manager.start(profile)
        except (OSError, ValueError) as exc:
            return _error(500, str(exc))
        return {"status": "started", "id": profile_id}

    @app.post("/api/sessions/{profile_id}/stop", tags=tags)
    def stop_session(profile_id: str) -> Any:
        try:
            state.session_manager.stop(profile_id)
        except (OSError, ValueError) as exc:
            return _error(500, str(exc))
        return {"status": "stopped", "id": profile_id}

    @app.websocket("/ws")
    async def sessions_feed(websocket: WebSocket) -> None:
        await websocket.accept()

        async def until_closed() -> None:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    return

        watcher = asyncio.create_task(until_closed())
        try:
            while not watcher.done():
                sessions = await run_in_threadpool(state.session_manager.list_sessions)
                payload = json.dumps(
                    {
                        "type": "sessions_update",
                        "data": [session.to_dict() for session in sessions],
                    }
                )
                try:
                    await websocket.send_text(payload)
                except (WebSocketDisconnect, RuntimeError):
                    break
                await asyncio.wait({watcher}, timeout=state.update_interval)
        finally:
            watcher.cancel()

    return app


def _port(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {text!r}") from None
    if not 0 <= value <= 0xFFFF:
        raise argparse.ArgumentTypeError(f"port out of range: {value}")
    return value


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reverse-ssh-web", description="Serve the reverse SSH management API"
    )
    parser.add_argument(
        "--host",
        default=os.environ.get("HOST", DEFAULT_HOST),
        help="Host to bind to",
    )
    parser.add_argument(
        "--port",
        type=_port,
        default=os.environ.get("PORT", str(DEFAULT_PORT)),
        help="Port to bind to",
    )
    parser.add_argument("--version", action="version", version=VERSION)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments and serve the API; returns the process exit status."""
    logging.basicConfig(stream=sys.stderr, level=logging.INFO)
    args = _build_parser().parse_args(argv)
    address = f"{args.host}:{args.port}"
    try:
        ipaddress.ip_address(args.host)
    except ValueError as exc:
        log.error("Invalid bind address (%r): %s", address, exc)
        return 1
    log.info("listening on %s", address)
    uvicorn.run(create_app(AppState()), host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())