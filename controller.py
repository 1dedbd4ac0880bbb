"""
PlayController — Layer 2 (Board Logic)

Owns the GameState and every rule that mutates it: token spawning and
formations, the pointer-driven drag state machine, ball possession, keyframe
recording and keyframe playback.

Layer 3 (renderer / server / UI) calls:
  ctrl.pointer_down(x, y) / pointer_move(x, y) / pointer_up() / pointer_leave()
  ctrl.toggle_recording() / take_snapshot() / increment_touch()
  ctrl.load_play(keyframes) / start_playback() / pause_playback() / ...
  ctrl.state                 — read-only view for drawing
  ctrl.renderer.draw(state)  — invoked by the controller after each mutation
"""

import enum
import importlib.util
import json
import math
import os
import time
from pathlib import Path
from typing import Callable, Iterable, List, Optional

import numpy as np

from entities import (
    BallState, GameState, KeyFrame, Player, PlayerKey, PlayerPath, Position,
)
from field import (
    BALL_HIT_RADIUS, CANVAS_HEIGHT, CANVAS_WIDTH, PLAYER_HIT_RADIUS, ROW_SPACING,
    TOKEN_RADIUS, FieldGeometry, nearest_within, within,
)
from playback import PlaybackScheduler
from relay import PLAY_START, PLAY_UPDATE, play_start_message, play_update_message


DEFAULT_INFO_MSG = (
    "Drag tokens to plan a move  [R] Record  [Space] Snapshot  [T] Touch  "
    "[P] Play  [0] Reset"
)


class InteractionMode(enum.Enum):
    IDLE = 0
    DRAGGING_PLAYER = 1
    DRAGGING_BALL = 2


class PlayController:
    """Layer 2: board state machine, timeline recorder and playback driver."""

    # ── Class-level constants ─────────────────────────────────────────────────
    MAX_PLAYERS_PER_TEAM = 20
    SPAWN_ROW_SIZE       = 5
    FRONT_ROW_SIZE       = 6
    BALL_HOLDER_SLOT     = 2      # 3rd front-row player takes the ball
    BALL_OFFSET          = 6.0    # hand-off offset when a holder is removed

    # ── Constructor ───────────────────────────────────────────────────────────

    def __init__(self, width: float = CANVAS_WIDTH, height: float = CANVAS_HEIGHT,
                 renderer=None, frame_source=None,
                 publish: Optional[Callable[[dict], None]] = None,
                 wall_clock: Optional[Callable[[], float]] = None):
        self.geometry = FieldGeometry(width, height)
        self.state = GameState(ball=BallState(self._center(), None))

        # Collaborators
        self.renderer = renderer      # any object with draw(state)
        self.publish  = publish       # optional live-view sink for PLAY_UPDATE
        self._wall_clock = wall_clock or time.time

        # Interaction
        self.mode = InteractionMode.IDLE
        self.dragging_player_id: Optional[str] = None
        self._drag_origin_holder: Optional[str] = None

        # Session identity
        self._spawn_counters = {1: 0, 2: 0}
        self._team1_ball_granted = False
        self._last_timestamp = 0

        # Playback
        self.playback_frames: List[KeyFrame] = []
        self.play_id: Optional[int] = None
        self.scheduler = PlaybackScheduler(self._apply_playback_frame, frame_source)

        # Scripts
        self._last_script: dict = {}
        self._last_script_path = ""

        # Status / info messages (L3 reads these)
        self.status_msg = ""
        self.info_msg   = DEFAULT_INFO_MSG

        self._request_redraw()

    # ──────────────────────────────────────────────────────────────────────────
    # Helpers
    # ──────────────────────────────────────────────────────────────────────────

    def _center(self) -> Position:
        cx, cy = self.geometry.center
        return Position(cx, cy)

    def _request_redraw(self) -> None:
        if self.renderer is not None:
            self.renderer.draw(self.state)

    def _now_ms(self) -> int:
        return int(self._wall_clock() * 1000)

    def find_player(self, player_id: Optional[str]) -> Optional[Player]:
        return self.state.find_player(player_id)

    def _new_player(self, team: int, pos: Position, number: int) -> Player:
        key = PlayerKey(team, self._spawn_counters[team])
        self._spawn_counters[team] += 1
        player = Player(key=key, position=pos, number=number)
        self.state.players.append(player)
        return player

    def _give_ball(self, player: Player, offset: bool = False) -> None:
        pos = player.position
        if offset:
            pos = pos.offset(self.BALL_OFFSET, -self.BALL_OFFSET)
        self.state.ball = BallState(pos, player.id)

    def _reassign_ball(self, preferred: Optional[str] = None,
                       offset: bool = False) -> None:
        """Hand the ball to ``preferred`` (team 1 only), else the first
        team-1 player, else leave it loose at the canvas centre."""
        target = self.find_player(preferred)
        if target is not None and target.team != 1:
            target = None
        if target is None:
            target = next((p for p in self.state.players if p.team == 1), None)
        if target is not None:
            self._give_ball(target, offset=offset)
        else:
            self.state.ball = BallState(self._center(), None)

    def _player_points(self) -> list:
        return [p.position.as_array() for p in self.state.players]

    def _forget_players(self, ids: set) -> None:
        st = self.state
        st.players = [p for p in st.players if p.id not in ids]
        for pid in ids:
            st.player_paths.pop(pid, None)
        if st.selected_player in ids:
            st.selected_player = None

    # ──────────────────────────────────────────────────────────────────────────
    # Entity management
    # ──────────────────────────────────────────────────────────────────────────

    def _spawn_slot_position(self, team: int, slot: int) -> Position:
        """Slot ``slot`` of a team block: rows of 5 centred in the team's half."""
        g = self.geometry
        row, col = divmod(slot, self.SPAWN_ROW_SIZE)
        rows = math.ceil(self.MAX_PLAYERS_PER_TEAM / self.SPAWN_ROW_SIZE)
        x = g.field.center_x + (col - (self.SPAWN_ROW_SIZE - 1) / 2) * ROW_SPACING
        y = g.half_center_y(team) + g.team_direction(team) * (row - (rows - 1) / 2) * ROW_SPACING
        return Position(x, y)

    def spawn_tokens(self, team: int, count: int) -> int:
        """Add up to ``count`` players to ``team``; returns how many were added."""
        if team not in (1, 2) or count <= 0:
            return 0
        existing = len(self.state.team_players(team))
        count = min(int(count), self.MAX_PLAYERS_PER_TEAM - existing)
        if count <= 0:
            return 0

        for i in range(count):
            slot = existing + i
            player = self._new_player(team, self._spawn_slot_position(team, slot), slot + 1)
            if team == 1 and not self._team1_ball_granted:
                self._team1_ball_granted = True
                self._give_ball(player)

        self.status_msg = f"Team {team}: {existing + count} player(s)"
        self._request_redraw()
        return count

    def remove_players_from_team(self, team: int, keep_count: int) -> int:
        """Trim ``team`` to its first ``keep_count`` players; returns removed count."""
        keep_count = max(0, int(keep_count))
        members = self.state.team_players(team)
        if len(members) <= keep_count:
            return 0

        dropped = {p.id for p in members[keep_count:]}
        held = self.state.ball.possession_player_id in dropped
        self._forget_players(dropped)
        if held:
            self._reassign_ball(offset=True)

        self.status_msg = f"Team {team}: {keep_count} player(s)"
        self._request_redraw()
        return len(dropped)

    def set_default_positions(self, team: int) -> None:
        """Replace ``team`` with the canonical formation.

        Same head-count as before (six when the team is empty): six across the
        team's anchor row, the rest as two substitute columns in the sideline.
        """
        if team not in (1, 2):
            return
        g = self.geometry
        members = self.state.team_players(team)
        n = min(len(members) or self.FRONT_ROW_SIZE, self.MAX_PLAYERS_PER_TEAM)
        old_ids = {p.id for p in members}
        held = self.state.ball.possession_player_id in old_ids
        self._forget_players(old_ids)

        front = min(n, self.FRONT_ROW_SIZE)
        row_y = g.anchor_row(team, "attack" if team == 1 else "defence")
        if front > 1:
            xs = np.linspace(g.field.left + TOKEN_RADIUS, g.field.right - TOKEN_RADIUS, front)
        else:
            xs = np.array([g.field.center_x])

        front_row = [
            self._new_player(team, Position(float(x), row_y), i + 1)
            for i, x in enumerate(xs)
        ]

        cols = g.sideline_columns(team)
        direction = g.team_direction(team)
        for j in range(n - front):
            row, col = divmod(j, 2)
            y = g.halfway_y + direction * (TOKEN_RADIUS + row * ROW_SPACING)
            self._new_player(team, Position(cols[col], y), front + j + 1)

        if team == 1:
            self._give_ball(front_row[min(self.BALL_HOLDER_SLOT, front - 1)])
            self._team1_ball_granted = True
        elif held:
            self._reassign_ball(offset=True)

        self.status_msg = f"Team {team}: default positions"
        self._request_redraw()

    def set_player_number(self, player_id: str, number: Optional[int]) -> bool:
        player = self.find_player(player_id)
        if player is None:
            return False
        player.number = number
        self._request_redraw()
        return True

    def clear_board(self) -> None:
        """Start a fresh session: no players, loose ball, empty timeline."""
        self.scheduler.load(0)
        self.playback_frames = []
        self.mode = InteractionMode.IDLE
        self.dragging_player_id = None
        self._drag_origin_holder = None
        self._spawn_counters = {1: 0, 2: 0}
        self._team1_ball_granted = False
        self.state = GameState(ball=BallState(self._center(), None))
        self.status_msg = ""
        self._request_redraw()

    # ──────────────────────────────────────────────────────────────────────────
    # Pointer state machine
    # ──────────────────────────────────────────────────────────────────────────

    def _hit_ball(self, x: float, y: float) -> bool:
        holder = self.state.ball_holder()
        center = holder.position if holder is not None else self.state.ball.position
        return within(center.x, center.y, x, y, BALL_HIT_RADIUS)

    def _begin_ball_drag(self) -> None:
        st = self.state
        self.mode = InteractionMode.DRAGGING_BALL
        self._drag_origin_holder = st.ball.possession_player_id
        st.is_dragging_ball = True
        st.is_ball_selected = True
        st.selected_player  = None

    def _begin_player_drag(self, player: Player) -> None:
        st = self.state
        self.mode = InteractionMode.DRAGGING_PLAYER
        self.dragging_player_id = player.id
        st.selected_player  = player.id
        st.is_ball_selected = False
        if st.is_recording:
            st.player_paths[player.id] = PlayerPath.seeded(player.position)

    def pointer_down(self, x: float, y: float) -> bool:
        """Pick up the ball or the nearest player. Returns True on a hit.

        The ball is tested first. A holder covers the ball's (smaller) hit
        circle at its own position, so pressing a holder's centre lifts the
        ball and pressing its rim lifts the player.
        """
        if self.mode != InteractionMode.IDLE:
            self.pointer_up()

        if self._hit_ball(x, y):
            self._begin_ball_drag()
            self._request_redraw()
            return True

        idx = nearest_within(self._player_points(), x, y, PLAYER_HIT_RADIUS)
        if idx is None:
            return False
        self._begin_player_drag(self.state.players[idx])
        self._request_redraw()
        return True

    def pointer_move(self, x: float, y: float) -> None:
        st = self.state
        cx, cy = self.geometry.clamp(x, y)
        pos = Position(cx, cy)

        if self.mode == InteractionMode.DRAGGING_BALL:
            st.ball = BallState(pos, None)
            self._request_redraw()
            return

        if self.mode == InteractionMode.DRAGGING_PLAYER:
            player = self.find_player(self.dragging_player_id)
            if player is None:
                return
            player.position = pos
            path = st.player_paths.get(player.id)
            if path is not None:
                path.extend(pos)
            if st.ball.possession_player_id == player.id:
                st.ball = BallState(pos, player.id)
            self._request_redraw()

    def pointer_up(self, x: Optional[float] = None, y: Optional[float] = None) -> None:
        if x is not None and y is not None and self.mode != InteractionMode.IDLE:
            self.pointer_move(x, y)

        if self.mode == InteractionMode.DRAGGING_BALL:
            self._release_ball()
        elif self.mode == InteractionMode.DRAGGING_PLAYER:
            self._release_player()

        self.mode = InteractionMode.IDLE
        self.dragging_player_id = None
        self._request_redraw()

    def pointer_leave(self) -> None:
        self.pointer_up()

    def _release_ball(self) -> None:
        st = self.state
        holder = st.ball_holder()
        release = holder.position if holder is not None else st.ball.position

        idx = nearest_within(self._player_points(), release.x, release.y, PLAYER_HIT_RADIUS)
        receiver = st.players[idx] if idx is not None else None

        st.is_dragging_ball = False
        st.is_ball_selected = False
        origin = self._drag_origin_holder
        self._drag_origin_holder = None

        if receiver is not None and receiver.team == 1:
            self._give_ball(receiver)
            if receiver.id != origin:
                self.status_msg = f"Ball to {receiver.id}"
                if st.is_recording:
                    self._capture_keyframe()
            return

        self._reassign_ball(preferred=origin)

    def _release_player(self) -> None:
        """Keep the drag as a pending path and put the token back."""
        st = self.state
        pid = self.dragging_player_id
        player = self.find_player(pid)
        path = st.player_paths.get(pid)
        if player is None or path is None:
            return
        path.end_pos = player.position
        player.position = path.start_pos
        if st.ball.possession_player_id == player.id:
            st.ball = BallState(path.start_pos, player.id)

    # ── Programmatic gestures (scripts, remote control) ───────────────────────

    def drag_player(self, player_id: str, x: float, y: float) -> bool:
        """Drag a player by id to (x, y) through the normal gesture rules."""
        if self.mode != InteractionMode.IDLE:
            self.pointer_up()
        player = self.find_player(player_id)
        if player is None:
            return False
        self._begin_player_drag(player)
        self.pointer_move(x, y)
        self.pointer_up()
        return True

    def pass_ball(self, player_id: str) -> bool:
        """Drag the ball onto a player; True if that player now holds it."""
        if self.mode != InteractionMode.IDLE:
            self.pointer_up()
        target = self.find_player(player_id)
        if target is None:
            return False
        self._begin_ball_drag()
        self.pointer_move(target.position.x, target.position.y)
        self.pointer_up()
        return self.state.ball.possession_player_id == player_id

    # ──────────────────────────────────────────────────────────────────────────
    # Recording
    # ──────────────────────────────────────────────────────────────────────────

    def is_recording(self) -> bool:
        return self.state.is_recording

    def toggle_recording(self) -> bool:
        st = self.state
        st.is_recording = not st.is_recording
        if st.is_recording:
            st.key_frames  = []
            st.player_paths.clear()
            st.touch_count = 0
            self.status_msg = "Recording: position players and take snapshots."
            print("[REC] Recording started")
        else:
            discarded = len(st.player_paths)
            st.player_paths.clear()
            self.status_msg = f"Recorded {len(st.key_frames)} keyframe(s)."
            print(f"[REC] Recording stopped  frames={len(st.key_frames)}  "
                  f"discarded_paths={discarded}")
        self._request_redraw()
        return st.is_recording

    def take_snapshot(self) -> Optional[KeyFrame]:
        """Commit every pending path and append one keyframe."""
        st = self.state
        if not st.is_recording:
            return None

        for pid, path in st.player_paths.items():
            player = self.find_player(pid)
            if player is None:
                continue
            player.position = path.end_pos
            if st.ball.possession_player_id == pid:
                st.ball = BallState(path.end_pos, pid)
        st.player_paths.clear()

        frame = self._capture_keyframe()
        self._request_redraw()
        return frame

    def increment_touch(self) -> int:
        st = self.state
        st.touch_count += 1
        if st.is_recording:
            self._capture_keyframe()
        self.status_msg = f"Touch {st.touch_count}"
        self._request_redraw()
        return st.touch_count

    def _capture_keyframe(self) -> KeyFrame:
        st = self.state
        ts = max(self._now_ms(), self._last_timestamp)
        self._last_timestamp = ts
        frame = KeyFrame(
            timestamp=ts,
            positions={p.id: p.position for p in st.players},
            ball=BallState(st.ball_render_position(), st.ball.possession_player_id),
            touch_count=st.touch_count,
        )
        st.key_frames.append(frame)
        self.status_msg = f"Keyframe #{len(st.key_frames)} recorded"
        if self.publish is not None:
            self.publish(play_update_message(frame))
        return frame

    def get_recorded_key_frames(self) -> List[KeyFrame]:
        return list(self.state.key_frames)

    def recorded_play_payload(self, name: str, category: str = "default",
                              folder_id: Optional[int] = None) -> dict:
        """Persistence record for the frames recorded so far."""
        return {
            "name": name,
            "category": category,
            "folderId": folder_id,
            "keyframes": [kf.to_dict() for kf in self.state.key_frames],
        }

    # ──────────────────────────────────────────────────────────────────────────
    # Loading / playback
    # ──────────────────────────────────────────────────────────────────────────

    def _hydrate(self, frame: KeyFrame) -> None:
        """Rebuild players and ball from one keyframe."""
        st = self.state
        players = []
        for pid, pos in frame.positions.items():
            key = PlayerKey.parse(pid)
            if key is None:
                continue
            players.append(Player(key=key, position=pos, number=key.spawn_index + 1))
            self._spawn_counters[key.team] = max(self._spawn_counters[key.team],
                                                 key.spawn_index + 1)
            if key.team == 1:
                self._team1_ball_granted = True

        st.players = players
        st.ball = frame.ball
        st.selected_player  = None
        st.is_dragging_ball = False
        st.is_ball_selected = False
        st.player_paths.clear()
        st.touch_count = frame.touch_count if frame.touch_count is not None else 0
        self.mode = InteractionMode.IDLE
        self.dragging_player_id = None

    def _overlay(self, frame: KeyFrame, apply_ball: bool = True) -> None:
        st = self.state
        for pid, pos in frame.positions.items():
            player = self.find_player(pid)
            if player is not None:
                player.position = pos
        if apply_ball:
            st.ball = frame.ball
        if frame.touch_count is not None:
            st.touch_count = frame.touch_count

    def load_play(self, keyframes: Iterable) -> int:
        """Load a stored play (keyframe dicts, KeyFrame objects or a play
        record with a ``keyframes`` field). Returns the frame count."""
        self.play_id = None
        if isinstance(keyframes, dict):
            self.play_id = keyframes.get("id")
            keyframes = keyframes.get("keyframes", [])
        self.playback_frames = [KeyFrame.from_dict(kf) for kf in keyframes]
        self.scheduler.load(len(self.playback_frames))
        if self.playback_frames:
            self._hydrate(self.playback_frames[0])
        self.status_msg = f"Loaded {len(self.playback_frames)} keyframe(s)"
        self._request_redraw()
        return len(self.playback_frames)

    def _apply_playback_frame(self, index: int) -> None:
        frame = self.playback_frames[index]
        self._overlay(frame)
        if self.publish is not None:
            self.publish(play_update_message(frame))
        self._request_redraw()

    def set_playback_speed(self, factor: float) -> None:
        self.scheduler.set_speed(factor)

    def start_playback(self) -> None:
        """Start or resume; announces PLAY_START when starting from frame 0."""
        fresh = not self.scheduler.running and self.scheduler.cursor == 0
        self.scheduler.start()
        if fresh and self.scheduler.running and self.publish is not None:
            self.publish(play_start_message(self.play_id))

    def pause_playback(self) -> None:
        self.scheduler.pause()

    def reset_playback(self) -> None:
        self.scheduler.rewind()
        if self.playback_frames:
            self._hydrate(self.playback_frames[0])
            self._request_redraw()

    def is_playback_active(self) -> bool:
        return self.scheduler.is_active()

    @property
    def playback_cursor(self) -> int:
        return self.scheduler.cursor

    def render_frame(self, index: int) -> bool:
        """Jump to frame ``index`` without touching the playback cursor/timer."""
        if not 0 <= index < len(self.playback_frames):
            return False
        if index == 0:
            self._hydrate(self.playback_frames[0])
        else:
            self._overlay(self.playback_frames[index])
        self._request_redraw()
        return True

    # ──────────────────────────────────────────────────────────────────────────
    # Live relay
    # ──────────────────────────────────────────────────────────────────────────

    def apply_remote_update(self, msg: dict) -> bool:
        """Apply a relayed message the same way a keyframe is applied."""
        kind = msg.get("type")
        if kind == PLAY_START:
            self.status_msg = f"Live play started ({msg.get('playId')})"
            return False
        if kind != PLAY_UPDATE:
            return False
        self._overlay(KeyFrame.from_dict(msg), apply_ball="ball" in msg)
        self._request_redraw()
        return True

    def get_state_json(self) -> str:
        """Current board as a compact single-line PLAY_UPDATE payload."""
        st = self.state
        frame = KeyFrame(
            timestamp=self._now_ms(),
            positions={p.id: p.position for p in st.players},
            ball=BallState(st.ball_render_position(), st.ball.possession_player_id),
            touch_count=st.touch_count,
        )
        return json.dumps(play_update_message(frame), separators=(',', ':'))

    # ──────────────────────────────────────────────────────────────────────────
    # Script system
    # ──────────────────────────────────────────────────────────────────────────

    def collect_script_files(self, directory: str = "scripts") -> list:
        """Return sorted list of .py play scripts in ``directory``."""
        scripts_dir = Path(directory)
        if not scripts_dir.is_dir():
            return []
        return sorted(p for p in scripts_dir.glob("*.py") if not p.name.startswith("_"))

    def execute_script(self, script: dict) -> int:
        """Build a recorded play from a script dict; returns keyframe count.

        Script format::

            {
              "setup": {"defaults": [1, 2]} | {"spawn": {"1": 6, "2": 4}},
              "ball":  "team1-2",                       # optional holder
              "steps": [
                {"moves": {"team1-2": (400, 250)},      # dragged, then snapshot
                 "pass_to": "team1-3",                  # optional ball drop
                 "touch": True},                        # optional touch count
              ],
            }
        """
        self._last_script = script
        self.clear_board()

        setup = script.get("setup", {})
        for team in setup.get("defaults", []):
            self.set_default_positions(int(team))
        for team, count in setup.get("spawn", {}).items():
            self.spawn_tokens(int(team), int(count))

        holder = script.get("ball")
        if holder is not None and self.find_player(holder) is not None:
            self._give_ball(self.find_player(holder))

        self.toggle_recording()
        self.take_snapshot()
        for step in script.get("steps", []):
            for pid, (x, y) in step.get("moves", {}).items():
                self.drag_player(pid, float(x), float(y))
            self.take_snapshot()
            if step.get("pass_to"):
                self.pass_ball(step["pass_to"])
            if step.get("touch"):
                self.increment_touch()
        self.toggle_recording()

        count = len(self.state.key_frames)
        self.status_msg = f"Script: {count} keyframe(s) recorded."
        print(f"[SCRIPT] {count} keyframe(s) from {len(script.get('steps', []))} step(s)")
        return count

    def load_script_file(self, path: str) -> int:
        """Load and execute a play script from a .py file exposing SCRIPT."""
        abs_path = os.path.abspath(path)
        if not os.path.exists(abs_path):
            self.status_msg = f"Script not found: {abs_path}"
            return 0
        spec = importlib.util.spec_from_file_location("_user_play_script", abs_path)
        mod  = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(mod)
        except Exception as exc:
            self.status_msg = f"Script error: {exc}"
            print(f"[SCRIPT] {os.path.basename(abs_path)} failed: {exc}")
            return 0
        script = getattr(mod, "SCRIPT", None)
        if script is None:
            self.status_msg = f"No SCRIPT variable in {os.path.basename(abs_path)}"
            return 0
        self._last_script_path = abs_path
        return self.execute_script(script)

    def reload_script(self) -> int:
        """Re-execute the last loaded script."""
        if self._last_script_path:
            return self.load_script_file(self._last_script_path)
        if self._last_script:
            return self.execute_script(self._last_script)
        self.status_msg = "No script loaded yet."
        return 0
