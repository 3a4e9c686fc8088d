"""
Tests for the console entry point and its command loop.
"""

import io
from concurrent.futures import Future

import pytest
from unittest.mock import MagicMock

from app import GameSession
from engine.board import Side
from main import build_parser, build_setup, format_board, parse_args, run_command
from models.match import GameType
from models.schemas import MatchCreate, PlayerIn


class ImmediateExecutor:
    """Runs submitted calls on the calling thread."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        future.set_result(fn(*args, **kwargs))
        return future


class TestSetupArguments:
    """Tests for turning command-line rosters into a match setup."""

    def setup_method(self):
        """Set up the argument parser."""
        self.parser = build_parser()

    def test_parse_args(self):
        """Cup count and rosters are read from the command line."""
        args = parse_args(["--cups", "10", "--team1", "amy", "--team2", "bob"])

        assert args.cups == 10
        assert args.team1 == ["amy"]

    def test_two_player_rosters_make_2v2(self):
        """Two handles per side set up a 2v2 match."""
        args = self.parser.parse_args(["--team1", "amy", "cal", "--team2", "bob", "dee"])

        setup = build_setup(self.parser, args)

        assert setup.game_type == GameType.TWO_VS_TWO

    def test_uneven_roster_exits_with_usage(self, capsys):
        """An uneven roster is reported as a usage error, not a traceback."""
        args = self.parser.parse_args(["--team1", "amy", "cal", "--team2", "bob"])

        with pytest.raises(SystemExit) as exc_info:
            build_setup(self.parser, args)

        assert exc_info.value.code == 2
        err = capsys.readouterr().err
        assert "usage:" in err
        assert "Traceback" not in err

    def test_duplicate_handle_exits_with_usage(self, capsys):
        """A handle used on both sides is reported as a usage error."""
        args = self.parser.parse_args(["--team1", "amy", "--team2", "amy"])

        with pytest.raises(SystemExit):
            build_setup(self.parser, args)

        assert "unique" in capsys.readouterr().err


class TestCommandLoop:
    """Tests for run_command."""

    def setup_method(self):
        """Set up a 1v1 session over a mock store."""
        setup = MatchCreate(
            game_type=GameType.ONE_VS_ONE,
            team1_players=[PlayerIn(handle="amy")],
            team2_players=[PlayerIn(handle="bob")],
        )
        self.session = GameSession(setup, MagicMock(), executor=ImmediateExecutor())
        self.out = io.StringIO()

    def test_sink_and_undo(self):
        """sink and undo drive the tracker."""
        run_command(self.session, "sink team2 3", self.out)
        assert self.session.tracker.remaining(Side.TEAM2) == 5

        run_command(self.session, "undo", self.out)
        assert self.session.tracker.remaining(Side.TEAM2) == 6

    def test_bounce_and_grenade(self):
        """bounce and grenade commands sink their whole group."""
        run_command(self.session, "bounce team1 0 1", self.out)
        run_command(self.session, "grenade team2 3", self.out)

        assert self.session.tracker.remaining(Side.TEAM1) == 4
        assert self.session.tracker.remaining(Side.TEAM2) == 1

    def test_surrender_stops_loop(self):
        """The loop stops once the match is over."""
        assert not run_command(self.session, "surrender team1", self.out)

    def test_quit_stops_loop(self):
        """quit stops the loop."""
        assert not run_command(self.session, "quit", self.out)

    def test_unknown_command_reported(self):
        """Unknown commands are reported and the loop continues."""
        assert run_command(self.session, "dance", self.out)
        assert "Unknown command" in self.out.getvalue()

    def test_board_output_marks_sunk_cups(self):
        """The board printout marks sunk cups with x."""
        run_command(self.session, "sink team2 0", self.out)

        text = format_board(self.session.tracker.board)
        assert "team2: 0x 1o" in text
