"""
CupTally - Cup-elimination match tracker

Entry point: prepares directories, logging and the database, then reads
table commands from stdin until the match is over.
"""

import argparse
import logging
import sys
from typing import Optional, TextIO

from config import APP_NAME, APP_VERSION, RACK_SETTINGS, configure_logging, init_config

HELP = """Commands:
  sink SIDE CUP [PLAYER]          regular shot
  bounce SIDE CUP SECOND [PLAYER] two cups, one shot
  grenade SIDE CUP [PLAYER]       target and every touching cup
  undo                            undo the last shot
  playon | win                    after a rack is emptied
  rerack SIDE [SLOT ...]          move the standing cups
  surrender SIDE
  board | help | quit"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cuptally", description=f"{APP_NAME} {APP_VERSION}")
    parser.add_argument("--cups", type=int, default=RACK_SETTINGS.default_cup_count,
                        choices=RACK_SETTINGS.supported_cup_counts)
    parser.add_argument("--team1", nargs="+", required=True, help="Team 1 player handles")
    parser.add_argument("--team2", nargs="+", required=True, help="Team 2 player handles")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    return parser


def parse_args(argv=None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def build_setup(parser: argparse.ArgumentParser, args: argparse.Namespace):
    """Validate the rosters; a bad setup exits with a usage message."""
    from pydantic import ValidationError

    from models.match import GameType
    from models.schemas import MatchCreate, PlayerIn

    try:
        return MatchCreate(
            game_type=GameType.TWO_VS_TWO if len(args.team1) == 2 else GameType.ONE_VS_ONE,
            cup_count=args.cups,
            team1_players=[PlayerIn(handle=h) for h in args.team1],
            team2_players=[PlayerIn(handle=h) for h in args.team2],
        )
    except ValidationError as e:
        parser.error("; ".join(err["msg"] for err in e.errors()))


def format_board(board) -> str:
    lines = []
    for side, cups in board.to_dict().items():
        marks = " ".join(f"{c['id']}{'x' if c['sunk'] else 'o'}" for c in cups)
        lines.append(f"{side}: {marks}")
    return "\n".join(lines)


def run_command(session, line: str, out: TextIO) -> bool:
    """Apply one command line. Returns False when the loop should stop."""
    from engine.board import ShotType, Side

    parts = line.split()
    if not parts:
        return True
    cmd, args = parts[0].lower(), parts[1:]
    tracker = session.tracker

    def player(index: int) -> Optional[str]:
        return args[index] if len(args) > index else None

    if cmd == "quit":
        return False
    if cmd == "help":
        print(HELP, file=out)
    elif cmd == "board":
        print(format_board(tracker.board), file=out)
    elif cmd in ("sink", "grenade"):
        shot_type = ShotType.GRENADE if cmd == "grenade" else ShotType.REGULAR
        session.sink_cup(Side(args[0]), int(args[1]), shot_type, player_handle=player(2))
    elif cmd == "bounce":
        session.sink_cup(Side(args[0]), int(args[1]), ShotType.BOUNCE,
                         player_handle=player(3), second_cup_id=int(args[2]))
    elif cmd == "undo":
        tracker.undo()
    elif cmd == "playon":
        tracker.redemption_play_on()
    elif cmd == "win":
        tracker.redemption_win()
    elif cmd == "rerack":
        slots = [int(a) for a in args[1:]] or None
        tracker.rerack(Side(args[0]), slots)
    elif cmd == "surrender":
        tracker.surrender(Side(args[0]))
    else:
        print(f"Unknown command: {cmd}", file=out)

    return not session.is_match_complete


def main(argv=None) -> int:
    """Main entry point for CupTally."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup = build_setup(parser, args)

    # Initialize configuration and directories
    init_config()
    configure_logging(logging.DEBUG if args.debug else logging.INFO)

    # Initialize database
    from models.base import SessionLocal, init_db
    init_db()

    from app import GameSession
    from services.match_store import SqlMatchStore

    session = GameSession(setup, SqlMatchStore(SessionLocal))
    session.event_bus.victory.connect(
        lambda side: print(f"{side} is out of cups: 'playon' or 'win'"))
    session.event_bus.match_completed.connect(
        lambda result: print(f"{result['winning_side']} wins "
                             f"{result['team1_score']}-{result['team2_score']}"))
    session.start()

    print(HELP)
    try:
        for line in sys.stdin:
            try:
                if not run_command(session, line, sys.stdout):
                    break
            except (IndexError, ValueError) as e:
                print(f"Bad command: {e}", file=sys.stdout)
            print(format_board(session.tracker.board))
    finally:
        session.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
