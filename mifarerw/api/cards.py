"""API routes for card operations: dump and write through the NFC bridge."""

import asyncio
import logging

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from mifarerw.bridge.nfc_bridge import nfc_bridge
from mifarerw.commands import USAGE, DumpCommand, HelpCommand, WriteCommand, decode_command
from mifarerw.engine.dump import DumpEngine
from mifarerw.engine.report import build_proxmark3_dump, format_dump, format_write
from mifarerw.engine.write import WriteResult, WriteState, WriteVerifyEngine
from mifarerw.rfid.errors import InputValidationError, SessionBusyError, TransportError
from mifarerw.rfid.keys import KeyCatalog
from mifarerw.rfid.mifare import BlockAddress

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cards", tags=["cards"])


async def get_session_opener():
    """
    Dependency returning a callable that opens a card session.

    The session is opened from the worker thread running the engine, and
    talks to the phone through the current event loop. Requests rejected
    before any card access never call it, so they work without a phone.
    """
    loop = asyncio.get_running_loop()

    def open_session():
        if not nfc_bridge.is_connected:
            raise HTTPException(status_code=503, detail="No phone connected to NFC bridge")
        return nfc_bridge.session(loop)

    return open_session


# ──────────────────────────────────────────────
# Command execution (runs in a worker thread)
# ──────────────────────────────────────────────

def run_dump(command: DumpCommand, open_session) -> dict:
    catalog = KeyCatalog.build(command.keys)
    with open_session() as session:
        report = DumpEngine(session).run(catalog)
        uid = getattr(session, "uid", "")
    return {
        "uid": uid,
        "keys": catalog.hex_keys(),
        **report.to_dict(),
        "lines": format_dump(report),
        "proxmark3": build_proxmark3_dump(report),
    }


def run_write(command: WriteCommand, open_session) -> dict:
    address = BlockAddress(command.sector, command.block)
    reason = WriteVerifyEngine.reject_reason(command.key, command.data)
    if reason:
        # Never wait for a card for a request that cannot succeed
        result = WriteResult(address, command.key, WriteState.REJECTED, error=reason)
        uid = ""
    else:
        with open_session() as session:
            result = WriteVerifyEngine(session).write(address, command.key, command.data.upper())
            uid = getattr(session, "uid", "")
    return {"uid": uid, **result.to_dict(), "lines": format_write(result)}


# ──────────────────────────────────────────────
# Routes
# ──────────────────────────────────────────────

@router.get("/help")
async def help_text():
    """Describe the accepted commands."""
    return {"usage": USAGE}


@router.post("/command")
async def run_command(body: dict = Body(...), open_session=Depends(get_session_opener)):
    """Decode a dump, write or help command and run it against the card on the phone."""
    try:
        command = decode_command(body)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))

    if isinstance(command, HelpCommand):
        return {"usage": USAGE}

    runner = run_dump if isinstance(command, DumpCommand) else run_write
    try:
        return await run_in_threadpool(runner, command, open_session)
    except InputValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SessionBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except TransportError as e:
        logger.error(f"Card session failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))
