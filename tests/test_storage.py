"""
Storage Tests — in-memory play library.
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from storage import MemStorage

KEYFRAMES = [{
    "timestamp": 1000,
    "positions": {"team1-0": {"x": 100.0, "y": 400.0}},
    "ball": {"position": {"x": 100.0, "y": 400.0}, "possessionPlayerId": "team1-0"},
    "touchCount": 0,
}]


class TestFolders:

    def test_create_and_list_newest_first(self):
        s = MemStorage()
        a = s.create_folder("Lineouts")
        b = s.create_folder("Scrums")
        assert a["id"] == 1 and b["id"] == 2
        assert [f["name"] for f in s.get_folders()] == ["Scrums", "Lineouts"]
        assert a["createdAt"] == a["updatedAt"]

    def test_rename(self):
        s = MemStorage()
        f = s.create_folder("Old")
        renamed = s.rename_folder(f["id"], "New")
        assert renamed["name"] == "New"
        assert s.get_folder(f["id"])["name"] == "New"

    def test_missing_folder(self):
        s = MemStorage()
        assert s.get_folder(9) is None
        assert s.rename_folder(9, "x") is None
        assert s.delete_folder(9) is False

    def test_delete_detaches_plays(self):
        s = MemStorage()
        f = s.create_folder("Set piece")
        p = s.create_play("Drive", "lineout", f["id"], KEYFRAMES)
        assert s.delete_folder(f["id"])
        assert s.get_folders() == []
        assert s.get_play(p["id"])["folderId"] is None


class TestPlays:

    def test_create_and_get(self):
        s = MemStorage()
        p = s.create_play("Crash", "attack", None, KEYFRAMES)
        got = s.get_play(p["id"])
        assert got["name"] == "Crash"
        assert got["keyframes"] == KEYFRAMES

    def test_reads_are_copies(self):
        s = MemStorage()
        p = s.create_play("Crash", "attack", None, KEYFRAMES)
        got = s.get_play(p["id"])
        got["keyframes"][0]["positions"]["team1-0"]["x"] = -1
        got["name"] = "changed"
        fresh = s.get_play(p["id"])
        assert fresh["name"] == "Crash"
        assert fresh["keyframes"][0]["positions"]["team1-0"]["x"] == 100.0

    def test_input_not_aliased(self):
        s = MemStorage()
        frames = [dict(KEYFRAMES[0])]
        p = s.create_play("Crash", "attack", None, frames)
        frames.append({"timestamp": 2})
        assert len(s.get_play(p["id"])["keyframes"]) == 1

    def test_filters(self):
        s = MemStorage()
        f = s.create_folder("F")
        s.create_play("A", "attack", f["id"], KEYFRAMES)
        s.create_play("B", "defence", None, KEYFRAMES)
        s.create_play("C", "attack", None, KEYFRAMES)
        assert [p["name"] for p in s.get_plays()] == ["C", "B", "A"]
        assert [p["name"] for p in s.get_plays_by_category("attack")] == ["C", "A"]
        assert [p["name"] for p in s.get_plays_by_folder(f["id"])] == ["A"]
        assert s.get_plays_by_category("kicks") == []

    def test_move_and_delete(self):
        s = MemStorage()
        f = s.create_folder("F")
        p = s.create_play("A", "default", None, KEYFRAMES)
        assert s.update_play_folder(p["id"], f["id"])["folderId"] == f["id"]
        assert s.update_play_folder(p["id"], None)["folderId"] is None
        assert s.update_play_folder(42, f["id"]) is None
        assert s.delete_play(p["id"])
        assert not s.delete_play(p["id"])
        assert s.get_play(p["id"]) is None
