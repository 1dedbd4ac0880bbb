"""
Headless rendering sink (PIL).

Draws the board the controller hands it into an RGB image: field lines,
team discs with selection/possession outlines, number labels, pending drag
paths and the ball. Drawing never writes back into the GameState.
"""

import io

from PIL import Image, ImageDraw

from field import BALL_RADIUS, TOKEN_RADIUS, FieldGeometry

# Solid colors (RGB)
BACKGROUND   = (0, 0, 0)
LINE         = (255, 255, 255)
TEAM_COLORS  = {1: (220, 30, 30), 2: (30, 70, 220)}
SELECTED     = (255, 230, 0)
POSSESSION   = (255, 255, 255)
PATH_COLOR   = (255, 255, 255)
BALL_FILL    = (255, 220, 0)
BALL_EDGE    = (204, 204, 204)
LABEL        = (255, 255, 255)

SELECTION_RADIUS = TOKEN_RADIUS + 4   # ring drawn just outside the disc


def _disc(draw: ImageDraw.ImageDraw, x: float, y: float, r: float, **kwargs) -> None:
    draw.ellipse([x - r, y - r, x + r, y + r], **kwargs)


class FieldImageRenderer:
    """Immediate-mode renderer; ``draw(state)`` replaces ``self.image``."""

    def __init__(self, geometry: FieldGeometry = None):
        self.geometry = geometry if geometry is not None else FieldGeometry()
        self.image = None
        self.frames_drawn = 0

    def draw(self, state) -> Image.Image:
        g = self.geometry
        img = Image.new("RGB", (int(g.width), int(g.height)), BACKGROUND)
        d = ImageDraw.Draw(img)

        # Field + halfway line
        f = g.field
        d.rectangle([f.left, f.top, f.right, f.bottom], outline=LINE, width=2)
        d.line([(f.left, g.halfway_y), (f.right, g.halfway_y)], fill=LINE, width=2)

        # Pending drag paths
        for path in state.player_paths.values():
            if len(path.path) >= 2:
                d.line([(p.x, p.y) for p in path.path], fill=PATH_COLOR, width=1)

        # Players
        holder_id = state.ball.possession_player_id
        for player in state.players:
            x, y = player.position.x, player.position.y
            _disc(d, x, y, TOKEN_RADIUS, fill=TEAM_COLORS.get(player.team, LINE))
            if player.id == holder_id:
                _disc(d, x, y, TOKEN_RADIUS, outline=POSSESSION, width=2)
            if player.id == state.selected_player:
                _disc(d, x, y, SELECTION_RADIUS, outline=SELECTED, width=3)
            if player.number is not None:
                text = str(player.number)
                l, t, r, b = d.textbbox((0, 0), text)
                d.text((x - (r - l) / 2, y - (b - t) / 2 - t), text, fill=LABEL)

        # Ball
        ball = state.ball_render_position()
        if state.is_ball_selected:
            _disc(d, ball.x, ball.y, BALL_RADIUS, fill=BALL_FILL, outline=LINE, width=3)
        else:
            _disc(d, ball.x, ball.y, BALL_RADIUS, fill=BALL_FILL, outline=BALL_EDGE, width=1)

        self.image = img
        self.frames_drawn += 1
        return img

    def to_png_bytes(self) -> bytes:
        if self.image is None:
            return b""
        buf = io.BytesIO()
        self.image.save(buf, format="PNG")
        return buf.getvalue()
