import logging

from fastapi import FastAPI

from glucosim import __version__
from glucosim.api import api_router
from glucosim.core.logging import configure_logging
from glucosim.core.settings import get_settings

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Glucose Simulator", version=__version__)
app.include_router(api_router, prefix="/api")


@app.on_event("startup")
async def startup_event() -> None:
    settings = get_settings()
    data_dir = settings.data.data_dir
    data_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Using data directory: %s", data_dir)


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run("glucosim.main:app", host=settings.server.host, port=settings.server.port)
