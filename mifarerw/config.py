"""Application configuration."""

import os

# NFC Bridge WebSocket
NFC_BRIDGE_HOST = os.getenv("NFC_BRIDGE_HOST", "0.0.0.0")
NFC_BRIDGE_PORT = int(os.getenv("NFC_BRIDGE_PORT", "8000"))

# Seconds to wait for a tag when a card session starts
CARD_WAIT_TIMEOUT = float(os.getenv("CARD_WAIT_TIMEOUT", "30"))
# Seconds allowed for one block read or write on the phone
BLOCK_OP_TIMEOUT = float(os.getenv("BLOCK_OP_TIMEOUT", "5"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
