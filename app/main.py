from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles
import logging

from app.api.auth_routes import router as auth_router
from app.api.monitor_routes import router as monitor_router
from app.api.routes import router
from app.config import get_instance_id, get_log_level

app = FastAPI(title="tile-traffic-server", version="0.1.0")
app.include_router(router)
app.include_router(monitor_router)
app.include_router(auth_router)
# Configure logging
logging.basicConfig(level=get_log_level())
logger = logging.getLogger(__name__)

# Browser client for poking at rooms by hand (no build step).
# Don't fail import if the static directory is missing from a deployment.
from pathlib import Path

_playground_dir = Path(__file__).resolve().parent / "static" / "playground"
if _playground_dir.exists():
    app.mount("/playground", StaticFiles(directory=str(_playground_dir), html=True), name="playground")


@app.get("/", response_class=PlainTextResponse)
async def _root() -> str:
    return f"Instance ID => {get_instance_id()}"


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "tile-traffic-server", "version": "0.1.0"}
