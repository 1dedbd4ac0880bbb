"""
Recording Tests — preview/commit drag protocol, keyframe capture events and
timeline ordering.
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from controller import PlayController
from entities import Position
from relay import PLAY_UPDATE


class FakeClock:
    """Wall clock returning scripted seconds."""

    def __init__(self, *values):
        self.values = list(values)
        self.last = values[0] if values else 0.0

    def __call__(self):
        if self.values:
            self.last = self.values.pop(0)
        return self.last


def board_with_holder_at(x, y, **kwargs):
    """One team-1 player (team1-0, holding the ball) placed at (x, y)."""
    ctrl = PlayController(**kwargs)
    ctrl.spawn_tokens(1, 1)
    ctrl.drag_player("team1-0", x, y)
    return ctrl


def rim_drag(ctrl, player_id, x, y):
    p = ctrl.find_player(player_id)
    ctrl.pointer_down(p.position.x + 15, p.position.y)
    ctrl.pointer_move(x, y)
    ctrl.pointer_up()


class TestToggle:

    def test_toggle_returns_new_state(self):
        ctrl = PlayController()
        assert ctrl.toggle_recording() is True
        assert ctrl.is_recording()
        assert ctrl.toggle_recording() is False

    def test_start_clears_previous_take(self):
        ctrl = board_with_holder_at(100, 100)
        ctrl.toggle_recording()
        ctrl.take_snapshot()
        ctrl.increment_touch()
        first_take = ctrl.get_recorded_key_frames()
        ctrl.toggle_recording()
        ctrl.toggle_recording()
        assert ctrl.get_recorded_key_frames() == []
        assert ctrl.state.touch_count == 0
        assert len(first_take) == 2

    def test_snapshot_ignored_when_not_recording(self):
        ctrl = board_with_holder_at(100, 100)
        assert ctrl.take_snapshot() is None
        assert ctrl.get_recorded_key_frames() == []


class TestPreviewCommit:

    def test_snapshot_commits_dragged_position(self):
        ctrl = board_with_holder_at(100, 100)
        ctrl.toggle_recording()
        rim_drag(ctrl, "team1-0", 150, 120)
        ctrl.take_snapshot()

        frames = ctrl.get_recorded_key_frames()
        assert len(frames) == 1
        assert frames[0].positions["team1-0"] == Position(150, 120)
        assert ctrl.find_player("team1-0").position == Position(150, 120)

    def test_release_without_snapshot_reverts(self):
        ctrl = board_with_holder_at(100, 100)
        ctrl.toggle_recording()
        rim_drag(ctrl, "team1-0", 150, 120)

        player = ctrl.find_player("team1-0")
        assert player.position == Position(100, 100)
        path = ctrl.state.player_paths["team1-0"]
        assert path.start_pos == Position(100, 100)
        assert path.end_pos == Position(150, 120)
        assert path.path[0] == Position(100, 100)
        assert path.path[-1] == Position(150, 120)
        # the held ball goes back with the player
        assert ctrl.state.ball_render_position() == Position(100, 100)

    def test_snapshot_clears_paths(self):
        ctrl = board_with_holder_at(100, 100)
        ctrl.toggle_recording()
        rim_drag(ctrl, "team1-0", 150, 120)
        ctrl.take_snapshot()
        assert ctrl.state.player_paths == {}

    def test_stop_discards_pending_paths(self):
        ctrl = board_with_holder_at(100, 100)
        ctrl.toggle_recording()
        rim_drag(ctrl, "team1-0", 150, 120)
        ctrl.toggle_recording()
        assert ctrl.state.player_paths == {}
        assert ctrl.find_player("team1-0").position == Position(100, 100)

    def test_several_pending_paths_commit_together(self):
        ctrl = PlayController()
        ctrl.spawn_tokens(2, 2)
        ctrl.toggle_recording()
        a, b = ctrl.state.players
        ctrl.drag_player(a.id, 200, 100)
        ctrl.drag_player(b.id, 500, 100)
        frame = ctrl.take_snapshot()
        assert frame.positions[a.id] == Position(200, 100)
        assert frame.positions[b.id] == Position(500, 100)


class TestCaptureEvents:

    def test_possession_change_captures_keyframe(self):
        ctrl = PlayController()
        ctrl.spawn_tokens(1, 2)
        ctrl.toggle_recording()
        assert ctrl.pass_ball("team1-1")
        frames = ctrl.get_recorded_key_frames()
        assert len(frames) == 1
        assert frames[0].ball.possession_player_id == "team1-1"
        assert frames[0].ball.position == ctrl.find_player("team1-1").position

    def test_drop_back_on_same_holder_captures_nothing(self):
        ctrl = PlayController()
        ctrl.spawn_tokens(1, 1)
        ctrl.spawn_tokens(2, 1)
        ctrl.toggle_recording()
        holder = ctrl.find_player("team1-0")
        ctrl.pointer_down(holder.position.x, holder.position.y)
        ctrl.pointer_up()
        assert ctrl.pass_ball("team2-0") is False
        assert ctrl.get_recorded_key_frames() == []
        assert ctrl.state.ball.possession_player_id == "team1-0"

    def test_touch_captures_keyframe_while_recording(self):
        ctrl = board_with_holder_at(100, 100)
        assert ctrl.increment_touch() == 1
        assert ctrl.get_recorded_key_frames() == []
        ctrl.toggle_recording()
        ctrl.increment_touch()
        ctrl.increment_touch()
        frames = ctrl.get_recorded_key_frames()
        assert [f.touch_count for f in frames] == [1, 2]

    def test_timeline_only_grows_in_time_order(self):
        clock = FakeClock(10.0, 12.0, 11.0, 13.0)
        ctrl = board_with_holder_at(100, 100, wall_clock=clock)
        ctrl.spawn_tokens(1, 1)
        ctrl.toggle_recording()
        ctrl.take_snapshot()
        ctrl.increment_touch()
        ctrl.take_snapshot()          # clock stepped backwards
        ctrl.pass_ball("team1-1")
        stamps = [f.timestamp for f in ctrl.get_recorded_key_frames()]
        assert stamps == [10000, 12000, 12000, 13000]

    def test_keyframes_do_not_follow_later_moves(self):
        ctrl = board_with_holder_at(100, 100)
        ctrl.toggle_recording()
        first = ctrl.take_snapshot()
        rim_drag(ctrl, "team1-0", 300, 300)
        ctrl.take_snapshot()
        assert first.positions["team1-0"] == Position(100, 100)
        assert first.ball.position == Position(100, 100)


class TestHandOff:

    def test_publish_sink_receives_updates(self):
        sent = []
        ctrl = board_with_holder_at(100, 100, publish=sent.append)
        ctrl.toggle_recording()
        ctrl.take_snapshot()
        assert len(sent) == 1
        assert sent[0]["type"] == PLAY_UPDATE
        assert sent[0]["positions"]["team1-0"] == {"x": 100.0, "y": 100.0}

    def test_recorded_play_payload(self):
        ctrl = board_with_holder_at(100, 100)
        ctrl.toggle_recording()
        ctrl.take_snapshot()
        payload = ctrl.recorded_play_payload("Crash", folder_id=3)
        assert payload["name"] == "Crash"
        assert payload["category"] == "default"
        assert payload["folderId"] == 3
        assert payload["keyframes"][0]["ball"]["possessionPlayerId"] == "team1-0"
