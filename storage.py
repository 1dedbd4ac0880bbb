"""
In-memory play library: named plays grouped into optional folders.

Records are plain dicts in the stored-play JSON shape. Every read returns a
copy, so callers never alias the store. Missing ids come back as None / False.
"""

import copy
import itertools
from datetime import datetime, timezone
from typing import List, Optional


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class MemStorage:

    def __init__(self):
        self._folders: dict[int, dict] = {}
        self._plays: dict[int, dict] = {}
        self._folder_ids = itertools.count(1)
        self._play_ids = itertools.count(1)

    @staticmethod
    def _newest_first(records) -> List[dict]:
        return [copy.deepcopy(r) for r in sorted(records, key=lambda r: r["id"], reverse=True)]

    # ── Folders ───────────────────────────────────────────────────────────────

    def get_folders(self) -> List[dict]:
        return self._newest_first(self._folders.values())

    def get_folder(self, folder_id: int) -> Optional[dict]:
        folder = self._folders.get(folder_id)
        return copy.deepcopy(folder) if folder is not None else None

    def create_folder(self, name: str) -> dict:
        now = _now()
        folder = {"id": next(self._folder_ids), "name": name,
                  "createdAt": now, "updatedAt": now}
        self._folders[folder["id"]] = folder
        print(f"[API] folder created id={folder['id']} name={name!r}")
        return copy.deepcopy(folder)

    def rename_folder(self, folder_id: int, name: str) -> Optional[dict]:
        folder = self._folders.get(folder_id)
        if folder is None:
            return None
        folder["name"] = name
        folder["updatedAt"] = _now()
        return copy.deepcopy(folder)

    def delete_folder(self, folder_id: int) -> bool:
        """Delete a folder; its plays stay in the library, detached."""
        if self._folders.pop(folder_id, None) is None:
            return False
        now = _now()
        for play in self._plays.values():
            if play["folderId"] == folder_id:
                play["folderId"] = None
                play["updatedAt"] = now
        print(f"[API] folder deleted id={folder_id}")
        return True

    # ── Plays ─────────────────────────────────────────────────────────────────

    def get_plays(self) -> List[dict]:
        return self._newest_first(self._plays.values())

    def get_play(self, play_id: int) -> Optional[dict]:
        play = self._plays.get(play_id)
        return copy.deepcopy(play) if play is not None else None

    def get_plays_by_folder(self, folder_id: int) -> List[dict]:
        return self._newest_first(p for p in self._plays.values() if p["folderId"] == folder_id)

    def get_plays_by_category(self, category: str) -> List[dict]:
        return self._newest_first(p for p in self._plays.values() if p["category"] == category)

    def create_play(self, name: str, category: str, folder_id: Optional[int],
                    keyframes: list) -> dict:
        now = _now()
        play = {
            "id": next(self._play_ids),
            "name": name,
            "category": category,
            "folderId": folder_id,
            "keyframes": copy.deepcopy(keyframes),
            "createdAt": now,
            "updatedAt": now,
        }
        self._plays[play["id"]] = play
        print(f"[API] play created id={play['id']} name={name!r} frames={len(keyframes)}")
        return copy.deepcopy(play)

    def delete_play(self, play_id: int) -> bool:
        return self._plays.pop(play_id, None) is not None

    def update_play_folder(self, play_id: int, folder_id: Optional[int]) -> Optional[dict]:
        play = self._plays.get(play_id)
        if play is None:
            return None
        play["folderId"] = folder_id
        play["updatedAt"] = _now()
        return copy.deepcopy(play)
