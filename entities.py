"""
Rugby Play Board — Entity Model
Layer 1: value types for players, ball, drag paths, keyframes and the
mutable GameState owned by the controller.
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

import numpy as np

_PLAYER_ID_RE = re.compile(r"^team([12])-(\d+)$")


@dataclass(frozen=True)
class Position:
    x: float
    y: float

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y], dtype=float)

    def offset(self, dx: float, dy: float) -> "Position":
        return Position(self.x + dx, self.y + dy)

    def to_dict(self) -> dict:
        return {"x": float(self.x), "y": float(self.y)}

    @classmethod
    def from_dict(cls, data) -> "Position":
        if isinstance(data, Position):
            return data
        if isinstance(data, dict):
            return cls(float(data["x"]), float(data["y"]))
        return cls(float(data[0]), float(data[1]))


@dataclass(frozen=True)
class PlayerKey:
    """Composite identity of a player: team plus per-team spawn index.

    The stored-play format keys positions by ``"team{team}-{index}"``; that
    string is rendered from the key and parsed back only at load time.
    """
    team: int
    spawn_index: int

    @property
    def id(self) -> str:
        return f"team{self.team}-{self.spawn_index}"

    @classmethod
    def parse(cls, player_id: str) -> Optional["PlayerKey"]:
        m = _PLAYER_ID_RE.match(str(player_id))
        if m is None:
            return None
        return cls(int(m.group(1)), int(m.group(2)))


@dataclass
class Player:
    key: PlayerKey
    position: Position
    number: Optional[int] = None

    @property
    def id(self) -> str:
        return self.key.id

    @property
    def team(self) -> int:
        return self.key.team


@dataclass(frozen=True)
class BallState:
    position: Position
    possession_player_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "position": self.position.to_dict(),
            "possessionPlayerId": self.possession_player_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BallState":
        return cls(
            position=Position.from_dict(data["position"]),
            possession_player_id=data.get("possessionPlayerId"),
        )


@dataclass
class PlayerPath:
    """Pointer trail of one drag gesture, pending commit by a snapshot."""
    start_pos: Position
    end_pos: Position
    path: List[Position] = field(default_factory=list)

    @classmethod
    def seeded(cls, pos: Position) -> "PlayerPath":
        return cls(start_pos=pos, end_pos=pos, path=[pos])

    def extend(self, pos: Position) -> None:
        self.end_pos = pos
        self.path.append(pos)


@dataclass(frozen=True)
class KeyFrame:
    timestamp: int
    positions: Mapping[str, Position]
    ball: BallState
    touch_count: Optional[int] = None

    def __post_init__(self):
        # Read-only copy of the positions at capture time
        object.__setattr__(self, "positions", MappingProxyType(dict(self.positions)))

    def to_dict(self) -> dict:
        out = {
            "timestamp": self.timestamp,
            "positions": {pid: p.to_dict() for pid, p in self.positions.items()},
            "ball": self.ball.to_dict(),
        }
        if self.touch_count is not None:
            out["touchCount"] = self.touch_count
        return out

    @classmethod
    def from_dict(cls, data) -> "KeyFrame":
        if isinstance(data, KeyFrame):
            return data
        positions = {
            str(pid): Position.from_dict(p)
            for pid, p in data.get("positions", {}).items()
        }
        ball_data = data.get("ball")
        if ball_data:
            ball = BallState.from_dict(ball_data)
        else:
            # Older plays stored positions only
            ball = BallState(Position(0.0, 0.0), None)
        touch = data.get("touchCount")
        return cls(
            timestamp=int(data.get("timestamp", 0)),
            positions=positions,
            ball=ball,
            touch_count=int(touch) if touch is not None else None,
        )


@dataclass
class GameState:
    """All mutable simulation state. Mutated only by PlayController."""
    ball: BallState
    players: List[Player] = field(default_factory=list)
    selected_player: Optional[str] = None
    is_recording: bool = False
    is_dragging_ball: bool = False
    is_ball_selected: bool = False
    touch_count: int = 0
    player_paths: Dict[str, PlayerPath] = field(default_factory=dict)
    key_frames: List[KeyFrame] = field(default_factory=list)

    def team_players(self, team: int) -> List[Player]:
        return [p for p in self.players if p.team == team]

    def find_player(self, player_id: Optional[str]) -> Optional[Player]:
        if player_id is None:
            return None
        return next((p for p in self.players if p.id == player_id), None)

    def ball_holder(self) -> Optional[Player]:
        return self.find_player(self.ball.possession_player_id)

    def ball_render_position(self) -> Position:
        """Where the ball is drawn: on its holder, else at its own position."""
        holder = self.ball_holder()
        if holder is not None and not self.is_dragging_ball:
            return holder.position
        return self.ball.position
