"""
Phone side of the service.

The phone app holds this WebSocket open and carries out the block reads and
writes that a card session asks for. The status route tells clients whether
a dump or write can start right now.
"""

from fastapi import APIRouter, WebSocket

from mifarerw.bridge.nfc_bridge import nfc_bridge

router = APIRouter(tags=["bridge"])


@router.websocket("/ws/nfc")
async def nfc_websocket(websocket: WebSocket):
    """Register the phone as the card reader and serve its replies until it disconnects."""
    await nfc_bridge.connect(websocket)
    await nfc_bridge.listen(websocket)


@router.get("/api/bridge/status")
async def bridge_status():
    """Report whether a phone is attached and whether it is busy with a card session."""
    return {"connected": nfc_bridge.is_connected, "in_session": nfc_bridge.in_session}
