from fastapi import FastAPI
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles
import logging
import os

from catclicker.api.routes import router
from catclicker.catalog.startup import init_catalog_for_app

APP_NAME = "catclicker"
APP_VERSION = "0.1.0"

app = FastAPI(title=APP_NAME, version=APP_VERSION)
app.include_router(router)
# Configure logging
logging.basicConfig(level=os.environ.get("CATCLICKER_LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

# Serve the browser UI (no build step).
from pathlib import Path

_static_dir = Path(__file__).resolve().parent / "static"
if _static_dir.exists():
    app.mount("/ui", StaticFiles(directory=str(_static_dir), html=True), name="ui")


@app.on_event("startup")
async def _startup() -> None:
    init_catalog_for_app()


@app.get("/")
async def _root() -> RedirectResponse:
    return RedirectResponse(url="/ui/")


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": APP_NAME, "version": APP_VERSION}
