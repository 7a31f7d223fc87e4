from fastapi import FastAPI
import logging
from pathlib import Path

from dotenv import load_dotenv

from contention.api.routes import router
from contention.config import Settings
from contention.core.context import create_context
from contention.websocket_hub import DisplayWebSocketHub

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

_project_root = Path(__file__).resolve().parents[1]


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the Display-facing app around a fresh AppContext.

    Snapshot and log updates are pushed to WebSocket clients as lightweight
    `{"type": ...}` events; clients re-fetch state over REST.
    """

    if settings is None:
        env_path = _project_root / ".env"
        if env_path.exists():
            load_dotenv(dotenv_path=env_path, override=False)
        settings = Settings.from_env()

    app = FastAPI(title="contention-lab", version="0.1.0")
    app.include_router(router)

    ctx = create_context(settings)
    hub = DisplayWebSocketHub()
    ctx.sync.add_listener(
        lambda snap: hub.notify(
            {"type": "snapshot_updated", "source": snap.source, "seq": snap.seq, "length": len(snap)}
        )
    )
    ctx.log.add_listener(lambda entry: hub.notify({"type": "log_appended", "seq": entry.seq, "message": entry.message}))

    app.state.ctx = ctx
    app.state.hub = hub
    logger.info("contention-lab ready (log capacity=%d)", settings.log_capacity)

    @app.get("/info")
    async def info() -> dict[str, str]:
        return {"name": "contention-lab", "version": "0.1.0"}

    return app


app = create_app()
