"""
MifareRW — MIFARE Classic 1K dump and write service.

FastAPI backend driving a phone NFC bridge and providing APIs for:
- Dumping every block of a card with user and well-known default keys
- Writing one block with a given key, reporting old and new content
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from mifarerw.config import LOG_LEVEL, NFC_BRIDGE_HOST, NFC_BRIDGE_PORT
from mifarerw.api import cards, bridge

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting MifareRW...")
    yield
    logger.info("Shutting down MifareRW")


app = FastAPI(
    title="MifareRW",
    description="MIFARE Classic 1K dump and write",
    version="1.0.0",
    lifespan=lifespan,
)

# Include API routers
app.include_router(cards.router)
app.include_router(bridge.router)


def run():
    """Serve the API and the bridge WebSocket."""
    uvicorn.run(app, host=NFC_BRIDGE_HOST, port=NFC_BRIDGE_PORT)


if __name__ == "__main__":
    run()
