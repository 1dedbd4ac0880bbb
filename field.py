"""
Rugby Play Board — Field Geometry
Layer 1: canvas-space field layout, clamping and hit-testing helpers.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

# ──────────────────────────────────────────────
# Constants (canvas pixels)
# ──────────────────────────────────────────────
CANVAS_WIDTH: int = 800
CANVAS_HEIGHT: int = 600

SIDELINE_WIDTH: float = 80.0     # touch-in-goal strip left/right of the field
END_MARGIN: float = 30.0         # strip above/below the try lines

TOKEN_RADIUS: float = 15.0       # player disc
BALL_RADIUS: float = 8.0         # drawn ball disc
BALL_HIT_RADIUS: float = 10.0    # pointer-down tolerance around the ball
PLAYER_HIT_RADIUS: float = 20.0  # nearest-player pick distance

ROW_SPACING: float = 35.0        # spacing between spawned tokens / substitutes
ATTACK_ROW_OFFSET: float = 60.0  # distance behind halfway for an attacking line
DEFENCE_ROW_OFFSET: float = 30.0 # distance behind halfway for a defensive line


@dataclass(frozen=True)
class FieldRect:
    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def center_x(self) -> float:
        return (self.left + self.right) / 2


class FieldGeometry:
    """Field layout derived from a canvas size.

    Team 1 defends the lower half (y > halfway) and attacks upward;
    team 2 holds the upper half. Everything here is a pure function of the
    canvas dimensions.
    """

    def __init__(self, width: float = CANVAS_WIDTH, height: float = CANVAS_HEIGHT):
        self.width = float(width)
        self.height = float(height)
        self.field = FieldRect(
            left=SIDELINE_WIDTH,
            top=END_MARGIN,
            right=self.width - SIDELINE_WIDTH,
            bottom=self.height - END_MARGIN,
        )

    # ──────────────────────────────────────────
    # Lines and anchors
    # ──────────────────────────────────────────
    @property
    def halfway_y(self) -> float:
        return self.height / 2

    @property
    def center(self) -> tuple:
        return (self.width / 2, self.height / 2)

    def team_direction(self, team: int) -> int:
        """+1 when the team's half lies below halfway, -1 above."""
        return 1 if team == 1 else -1

    def half_center_y(self, team: int) -> float:
        """Vertical midpoint of the team's half of the field."""
        if team == 1:
            return (self.halfway_y + self.field.bottom) / 2
        return (self.field.top + self.halfway_y) / 2

    def anchor_row(self, team: int, role: str = "attack") -> float:
        """y of the team's attacking or defensive line behind halfway."""
        offset = ATTACK_ROW_OFFSET if role == "attack" else DEFENCE_ROW_OFFSET
        return self.halfway_y + self.team_direction(team) * offset

    def sideline_columns(self, team: int) -> tuple:
        """Two x positions inside the team's sideline strip for substitutes."""
        inner_gap = (SIDELINE_WIDTH - ROW_SPACING) / 2
        if team == 1:
            outer = inner_gap
            return (outer, outer + ROW_SPACING)
        outer = self.width - inner_gap
        return (outer, outer - ROW_SPACING)

    # ──────────────────────────────────────────
    # Coordinates
    # ──────────────────────────────────────────
    def clamp(self, x: float, y: float) -> tuple:
        """Clamp a point into the play area, keeping a full token inside."""
        f = self.field
        cx = float(np.clip(x, f.left + TOKEN_RADIUS, f.right - TOKEN_RADIUS))
        cy = float(np.clip(y, f.top + TOKEN_RADIUS, f.bottom - TOKEN_RADIUS))
        return cx, cy

    def to_canvas(self, device_x: float, device_y: float,
                  display_width: float, display_height: float) -> tuple:
        """Convert pointer coordinates on a scaled display into canvas pixels."""
        sx = self.width / display_width if display_width else 1.0
        sy = self.height / display_height if display_height else 1.0
        return device_x * sx, device_y * sy


def nearest_within(points: Sequence, x: float, y: float,
                   radius: float) -> Optional[int]:
    """Index of the point nearest (x, y) strictly within ``radius``, else None.

    ``points`` is a sequence of (x, y) pairs; ties resolve to the earliest.
    """
    if len(points) == 0:
        return None
    arr = np.asarray(points, dtype=float).reshape(-1, 2)
    dist = np.linalg.norm(arr - np.array([x, y], dtype=float), axis=1)
    idx = int(np.argmin(dist))
    if dist[idx] < radius:
        return idx
    return None


def within(px: float, py: float, x: float, y: float, radius: float) -> bool:
    return float(np.hypot(px - x, py - y)) < radius
