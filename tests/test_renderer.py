"""
Renderer Tests — headless PIL drawing of the board.
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from controller import PlayController
from renderer import (
    BACKGROUND, BALL_FILL, LINE, PATH_COLOR, POSSESSION, SELECTED, TEAM_COLORS,
    FieldImageRenderer,
)


def board():
    renderer = FieldImageRenderer()
    ctrl = PlayController(renderer=renderer)
    return ctrl, renderer


class TestFieldImage:

    def test_canvas_size_and_lines(self):
        ctrl, renderer = board()
        img = renderer.image
        assert img.size == (800, 600)
        assert img.getpixel((10, 10)) == BACKGROUND
        assert img.getpixel((400, 30)) == LINE         # try line
        assert img.getpixel((80, 100)) == LINE         # sideline
        assert LINE in [img.getpixel((200, y)) for y in (299, 300, 301)]

    def test_loose_ball_at_centre(self):
        ctrl, renderer = board()
        assert renderer.image.getpixel((400, 300)) == BALL_FILL

    def test_team_discs(self):
        ctrl, renderer = board()
        ctrl.spawn_tokens(2, 1)
        p = ctrl.state.players[0]
        x, y = int(p.position.x), int(p.position.y)
        assert renderer.image.getpixel((x - 10, y)) == TEAM_COLORS[2]

    def test_selection_outline(self):
        ctrl, renderer = board()
        ctrl.spawn_tokens(2, 1)
        p = ctrl.state.players[0]
        ctrl.pointer_down(p.position.x, p.position.y)
        x, y = int(p.position.x), int(p.position.y)
        assert renderer.image.getpixel((x + 18, y)) == SELECTED
        assert renderer.image.getpixel((x + 14, y)) == TEAM_COLORS[2]

    def test_holder_outline(self):
        ctrl, renderer = board()
        ctrl.spawn_tokens(1, 1)
        p = ctrl.state.players[0]
        x, y = int(p.position.x), int(p.position.y)
        assert renderer.image.getpixel((x + 14, y)) == POSSESSION

    def test_selected_holder_keeps_both_outlines(self):
        ctrl, renderer = board()
        ctrl.spawn_tokens(1, 1)
        p = ctrl.state.players[0]
        # rim press lifts the player, not the ball
        assert ctrl.pointer_down(p.position.x + 12, p.position.y)
        assert ctrl.state.selected_player == p.id
        assert ctrl.state.ball.possession_player_id == p.id
        x, y = int(p.position.x), int(p.position.y)
        assert renderer.image.getpixel((x + 14, y)) == POSSESSION
        assert renderer.image.getpixel((x + 18, y)) == SELECTED

    def test_pending_path_polyline(self):
        ctrl, renderer = board()
        ctrl.spawn_tokens(2, 1)
        p = ctrl.state.players[0]
        ctrl.toggle_recording()
        ctrl.drag_player(p.id, 200, p.position.y)
        assert p.id in ctrl.state.player_paths
        column = [renderer.image.getpixel((260, y)) for y in range(214, 222)]
        assert PATH_COLOR in column

    def test_draw_does_not_mutate_state(self):
        ctrl, renderer = board()
        ctrl.spawn_tokens(1, 3)
        before = [(p.id, p.position) for p in ctrl.state.players]
        ball = ctrl.state.ball
        renderer.draw(ctrl.state)
        assert [(p.id, p.position) for p in ctrl.state.players] == before
        assert ctrl.state.ball == ball

    def test_redrawn_per_mutation(self):
        ctrl, renderer = board()
        start = renderer.frames_drawn
        ctrl.spawn_tokens(1, 2)
        ctrl.toggle_recording()
        assert renderer.frames_drawn == start + 2


class TestPng:

    def test_empty_before_first_draw(self):
        assert FieldImageRenderer().to_png_bytes() == b""

    def test_png_bytes(self):
        ctrl, renderer = board()
        assert renderer.to_png_bytes().startswith(b"\x89PNG")
