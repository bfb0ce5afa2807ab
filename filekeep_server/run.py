from __future__ import annotations

import argparse
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from filekeep import __version__
from filekeep.Config import ConfigManager, load_config
from filekeep.TrashGate import TrashService, TrashSettings
from filekeep.shared.gate import GateLogger

from filekeep_server import lifecycle
from filekeep_server.api import events as events_api
from filekeep_server.api import health as health_api
from filekeep_server.api import trash as trash_api
from filekeep_server.middleware.errors import register_error_handlers
from filekeep_server.services.events import EventBus, build_emitter

_log = GateLogger.get("Server")


def create_app(
    config: Optional[ConfigManager] = None,
    settings: Optional[TrashSettings] = None,
) -> FastAPI:
    """
    Build the FileKeep application.

    Settings come from ``config`` (or .env and the environment) unless given
    explicitly. The TrashService lives on ``app.state.trash``.
    """
    if config is None:
        config = ConfigManager() if settings is not None else load_config()
    GateLogger.set_level(config.get("LOG_LEVEL", "INFO"))
    settings = settings or TrashSettings.from_config(config)

    event_bus = EventBus()
    emit_event = build_emitter(event_bus)

    async def publish_sweep(report):
        await emit_event(
            "trash",
            f"Sweep: {report.summary()}",
            operation="sweep",
            reclaimed=report.reclaimed,
            errors=len(report.errors),
        )

    service = TrashService(settings, on_sweep=publish_sweep)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await lifecycle.startup(service, emit_event)
        yield
        await lifecycle.shutdown(service)

    app = FastAPI(title="FileKeep", version=__version__, lifespan=lifespan)
    app.state.trash = service
    app.state.event_bus = event_bus

    origins = config.get("CORS_ORIGINS") or []
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_error_handlers(app)

    app.include_router(trash_api.create_router(service, emit_event))
    app.include_router(events_api.create_router(event_bus))
    app.include_router(health_api.create_router({"TrashGate": service.get_health_status}))

    return app


def main(argv=None):
    parser = argparse.ArgumentParser(description="Run the FileKeep server")
    parser.add_argument("--env-file", default=".env", help="dotenv file to load")
    parser.add_argument("--config", default=None, help="Optional JSON config file")
    parser.add_argument("--root", default=None, help="Override FILEKEEP_ROOT")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    args = parser.parse_args(argv)

    config = load_config(env_file=args.env_file, config_json=args.config)
    if args.root:
        config.set("FILEKEEP_ROOT", args.root)

    app = create_app(config)
    host = args.host or config.get("HOST", "127.0.0.1")
    port = args.port or config.get("PORT", 8080)

    _log.info(f"Serving {app.state.trash.guard.root} on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level=str(config.get("LOG_LEVEL", "INFO")).lower())


if __name__ == "__main__":
    main()
