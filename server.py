"""
Rugby Play Board Web Server — Layer 3 (FastAPI + WebSocket)

Serves the play library over HTTP and relays live PLAY_START / PLAY_UPDATE
messages between connected viewers. Frame export renders a stored play
headlessly through PlayController + FieldImageRenderer.
"""

import json

from fastapi import FastAPI, HTTPException, Response, WebSocket, WebSocketDisconnect

from controller import PlayController
from field import CANVAS_HEIGHT, CANVAS_WIDTH, FieldGeometry
from relay import parse_relay_message, stamp
from renderer import FieldImageRenderer
from schema import FolderCreate, FolderRename, PlayCreate, PlayFolderUpdate
from storage import MemStorage

HOST = "0.0.0.0"
PORT = 8000
EXPORT_CANVAS = (CANVAS_WIDTH, CANVAS_HEIGHT)

# ── Storage / app ───────────────────────────────────────────────────────────

storage = MemStorage()
app = FastAPI()

clients: list[WebSocket] = []


def _require_play(play_id: int) -> dict:
    play = storage.get_play(play_id)
    if play is None:
        raise HTTPException(status_code=404, detail="Play not found")
    return play


def _require_folder(folder_id) -> None:
    if folder_id is not None and storage.get_folder(folder_id) is None:
        raise HTTPException(status_code=404, detail="Folder not found")


# ── Folders ─────────────────────────────────────────────────────────────────

@app.get("/api/folders")
async def list_folders():
    return storage.get_folders()


@app.post("/api/folders", status_code=201)
async def create_folder(body: FolderCreate):
    return storage.create_folder(body.name)


@app.patch("/api/folders/{folder_id}")
async def rename_folder(folder_id: int, body: FolderRename):
    folder = storage.rename_folder(folder_id, body.name)
    if folder is None:
        raise HTTPException(status_code=404, detail="Folder not found")
    return folder


@app.delete("/api/folders/{folder_id}", status_code=204)
async def delete_folder(folder_id: int):
    if not storage.delete_folder(folder_id):
        raise HTTPException(status_code=404, detail="Folder not found")
    return Response(status_code=204)


# ── Plays ───────────────────────────────────────────────────────────────────

@app.get("/api/plays")
async def list_plays():
    return storage.get_plays()


@app.get("/api/plays/category/{category}")
async def list_plays_by_category(category: str):
    return storage.get_plays_by_category(category)


@app.get("/api/plays/folder/{folder_id}")
async def list_plays_by_folder(folder_id: int):
    return storage.get_plays_by_folder(folder_id)


@app.get("/api/plays/{play_id}")
async def get_play(play_id: int):
    return _require_play(play_id)


@app.post("/api/plays", status_code=201)
async def create_play(body: PlayCreate):
    _require_folder(body.folderId)
    return storage.create_play(body.name, body.category, body.folderId,
                               body.keyframe_dicts())


@app.delete("/api/plays/{play_id}", status_code=204)
async def delete_play(play_id: int):
    if not storage.delete_play(play_id):
        raise HTTPException(status_code=404, detail="Play not found")
    return Response(status_code=204)


@app.patch("/api/plays/{play_id}/folder")
async def move_play(play_id: int, body: PlayFolderUpdate):
    _require_folder(body.folderId)
    play = storage.update_play_folder(play_id, body.folderId)
    if play is None:
        raise HTTPException(status_code=404, detail="Play not found")
    return play


@app.get("/api/plays/{play_id}/frames/{index}.png")
async def export_frame(play_id: int, index: int):
    """Render one keyframe of a stored play as a PNG."""
    play = _require_play(play_id)
    renderer = FieldImageRenderer(FieldGeometry(*EXPORT_CANVAS))
    ctrl = PlayController(*EXPORT_CANVAS, renderer=renderer)
    ctrl.load_play(play["keyframes"])
    if not ctrl.render_frame(index):
        raise HTTPException(status_code=404, detail="Frame not found")
    return Response(content=renderer.to_png_bytes(), media_type="image/png")


# ── Live relay ──────────────────────────────────────────────────────────────

async def _broadcast(msg: dict, sender: WebSocket = None) -> None:
    text = json.dumps(msg, separators=(',', ':'))
    dead: list[WebSocket] = []
    for ws in clients:
        if ws is sender:
            continue
        try:
            await ws.send_text(text)
        except Exception:
            dead.append(ws)
    for ws in dead:
        if ws in clients:
            clients.remove(ws)


@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    clients.append(ws)
    print(f"[WS] client connected ({len(clients)} open)")

    try:
        while True:
            data = await ws.receive_text()
            msg = parse_relay_message(data)
            if msg is None:
                continue
            await _broadcast(stamp(msg), sender=ws)
    except WebSocketDisconnect:
        pass
    finally:
        if ws in clients:
            clients.remove(ws)
        print(f"[WS] client disconnected ({len(clients)} open)")


# ── Run with uvicorn ────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("server:app", host=HOST, port=PORT, reload=False)
