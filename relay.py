"""
Relay message helpers for live viewing.

Wire format (JSON text frames on /ws):
  {"type": "PLAY_START",  "playId": int | null, "timestamp": ms}
  {"type": "PLAY_UPDATE", "positions": {id: {"x","y"}}, "ball": {...}?,
   "touchCount": int?, "timestamp": ms}
"""

import json
import time
from typing import Optional

from entities import KeyFrame

PLAY_START = "PLAY_START"
PLAY_UPDATE = "PLAY_UPDATE"
RELAY_TYPES = (PLAY_START, PLAY_UPDATE)


def now_ms() -> int:
    return int(time.time() * 1000)


def play_start_message(play_id: Optional[int]) -> dict:
    return {"type": PLAY_START, "playId": play_id, "timestamp": now_ms()}


def play_update_message(frame: KeyFrame) -> dict:
    """PLAY_UPDATE carrying one keyframe's positions and ball."""
    msg = frame.to_dict()
    msg["type"] = PLAY_UPDATE
    return msg


def parse_relay_message(text: str) -> Optional[dict]:
    """Decode a relay frame; None for malformed JSON or an unknown type."""
    try:
        msg = json.loads(text)
    except json.JSONDecodeError:
        return None
    if not isinstance(msg, dict) or msg.get("type") not in RELAY_TYPES:
        return None
    return msg


def stamp(msg: dict) -> dict:
    """Copy of ``msg`` with the relay's own timestamp."""
    out = dict(msg)
    out["timestamp"] = now_ms()
    return out
