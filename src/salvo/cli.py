"""Command-line driver for playing against the computer."""

from __future__ import annotations

import argparse
import random
import time
from typing import Sequence

from salvo.ai.opponent import ComputerOpponent, Strategy
from salvo.config import GameSettings, load_settings
from salvo.engine.board import CellStatus
from salvo.engine.errors import InvalidPlacement, PlacementExhausted
from salvo.engine.fleet import (
    AttackOutcome,
    Fleet,
    create_fleet,
    place_ship,
    place_ships_randomly,
)
from salvo.engine.game import GamePhase, Seat
from salvo.engine.instrumented_game import InstrumentedGameSession
from salvo.engine.ship import BOARD_SIZE, Coordinate, Orientation, ShipType
from salvo.telemetry import init_telemetry

ROW_LABELS = "ABCDEFGHIJ"
SYMBOLS = {
    CellStatus.HIT: "X",
    CellStatus.MISS: "o",
    CellStatus.SHIP: "S",
    CellStatus.EMPTY: ".",
}


def coordinate_from_input(text: str) -> Coordinate:
    """Parse ``A5`` or ``"0 4"`` style input into a coordinate."""
    cleaned = text.strip().upper()
    if not cleaned:
        raise ValueError("Empty coordinate.")
    if cleaned[0].isalpha():
        if cleaned[0] not in ROW_LABELS:
            raise ValueError("Row must be between A and J.")
        row = ROW_LABELS.index(cleaned[0])
        try:
            col = int(cleaned[1:]) - 1
        except ValueError as exc:
            raise ValueError("Column must be a number between 1 and 10.") from exc
    else:
        parts = cleaned.split()
        if len(parts) != 2:
            raise ValueError("Use formats like A5 or '3 7'.")
        try:
            row, col = map(int, parts)
        except ValueError as exc:
            raise ValueError("Use formats like A5 or '3 7'.") from exc
    if row not in range(BOARD_SIZE) or col not in range(BOARD_SIZE):
        raise ValueError("Coordinates must be within the 10x10 board.")
    return Coordinate(row, col)


def label(coord: Coordinate) -> str:
    return f"{ROW_LABELS[coord.row]}{coord.col + 1}"


def format_board(fleet: Fleet, show_ships: bool) -> str:
    board = fleet.board
    header = "    " + " ".join(f"{col + 1:>2}" for col in range(board.size))
    rows = [header]
    for row_index, row in enumerate(board.cells):
        symbols = []
        for cell in row:
            status = cell.status
            if status is CellStatus.SHIP and not show_ships:
                status = CellStatus.EMPTY
            symbols.append(f"{SYMBOLS[status]:>2}")
        rows.append(f"{ROW_LABELS[row_index]} |" + " ".join(symbols))
    return "\n".join(rows)


def describe_attack(name: str, coord: Coordinate, outcome: AttackOutcome) -> str:
    text = {
        AttackOutcome.HIT: "hit",
        AttackOutcome.MISS: "miss",
        AttackOutcome.SUNK: "hit and sunk a ship!",
        AttackOutcome.ALREADY_ATTACKED: "already attacked",
    }[outcome]
    return f"{name} fired at {label(coord)}: {text}"


def _prompt_for_coordinate(valid: Sequence[Coordinate]) -> Coordinate:
    valid_set = set(valid)
    while True:
        raw = input("Enter target coordinate (e.g., A5) or 'q' to quit: ").strip()
        if raw.lower() == "q":
            raise SystemExit("Goodbye!")
        try:
            coord = coordinate_from_input(raw)
        except ValueError as exc:
            print(f"Invalid input: {exc}")
            continue
        if coord not in valid_set:
            print("That cell has already been targeted. Choose another.")
            continue
        return coord


def _prompt_orientation(ship_type: ShipType) -> Orientation:
    while True:
        raw = (
            input(
                f"Place your {ship_type.value.title()} (length {ship_type.length}). Orientation [H/V]: "
            )
            .strip()
            .upper()
        )
        if raw in {"H", "HOR", "HORIZONTAL"}:
            return Orientation.HORIZONTAL
        if raw in {"V", "VER", "VERTICAL"}:
            return Orientation.VERTICAL
        print("Please enter H for horizontal or V for vertical.")


def _manual_placement(fleet: Fleet, allow_adjacent: bool) -> Fleet:
    for ship_type in ShipType:
        while True:
            print("\nCurrent layout:")
            print(format_board(fleet, show_ships=True))
            orientation = _prompt_orientation(ship_type)
            try:
                start = coordinate_from_input(input("Enter starting coordinate (e.g., A1): "))
                fleet = place_ship(fleet, ship_type, start, orientation, allow_adjacent)
            except InvalidPlacement:
                print("Ship cannot be placed there (out of bounds, overlapping or touching). Try again.")
                continue
            except ValueError as exc:
                print(f"Invalid coordinate: {exc}")
                continue
            break
    return fleet


def _prompt_yes_no(question: str) -> bool:
    while True:
        raw = input(f"{question} [Y/n]: ").strip().lower()
        if raw in {"", "y", "yes"}:
            return True
        if raw in {"n", "no"}:
            return False
        print("Please answer with 'y' or 'n'.")


def _random_fleet(fleet: Fleet, settings: GameSettings, rng: random.Random) -> Fleet:
    try:
        return place_ships_randomly(
            fleet, settings.allow_adjacent, rng, max_attempts=settings.max_placement_attempts
        )
    except PlacementExhausted:
        # One retry with fresh draws.
        return place_ships_randomly(
            fleet, settings.allow_adjacent, rng, max_attempts=settings.max_placement_attempts
        )


def play_game(settings: GameSettings, seed: int | None = None) -> None:
    print("Welcome to Salvo!\n")
    rng = random.Random(seed)
    player = create_fleet("player", "You")
    computer = create_fleet("computer", "Computer", is_computer=True)

    if _prompt_yes_no("Would you like to place your ships manually?"):
        player = _manual_placement(player, settings.allow_adjacent)
    else:
        player = _random_fleet(player, settings, rng)
        print("\nYour ships have been positioned automatically.")

    session = InstrumentedGameSession(player, _random_fleet(computer, settings, rng))
    ai = ComputerOpponent(settings.ai_strategy, rng)
    session.start(Seat.SELF)

    while session.phase is GamePhase.PLAYING:
        if session.turn is Seat.SELF:
            print("\nYour Board:")
            print(format_board(session.player, show_ships=True))
            print("\nEnemy Waters:")
            print(format_board(session.opponent, show_ships=False))
            coord = _prompt_for_coordinate(session.valid_targets(Seat.SELF))
            outcome = session.make_move(Seat.SELF, coord)
            print(describe_attack(session.player.name, coord, outcome))
        else:
            if settings.ai_thinking_delay:
                time.sleep(settings.ai_thinking_delay)
            coord = ai.choose_target(session.player)
            outcome = session.make_move(Seat.OPPONENT, coord)
            ai.observe(coord, outcome, session.player)
            print(describe_attack(session.opponent.name, coord, outcome))

    if session.winner is Seat.SELF:
        print("\nCongratulations, you won!")
    else:
        print("\nThe computer won this time. Better luck next battle!")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Play Battleship against the computer.")
    parser.add_argument(
        "--seed", type=int, default=None, help="Optional RNG seed for reproducibility."
    )
    strategy = parser.add_mutually_exclusive_group()
    strategy.add_argument(
        "--smart", dest="strategy", action="store_const", const=Strategy.SMART,
        help="Computer uses the hunt/target heuristic.",
    )
    strategy.add_argument(
        "--random", dest="strategy", action="store_const", const=Strategy.RANDOM,
        help="Computer fires at random cells.",
    )
    parser.add_argument(
        "--allow-adjacent", action="store_true", default=None,
        help="Let ships touch each other, diagonals included.",
    )
    return parser


def settings_from_args(args: argparse.Namespace, base: GameSettings) -> GameSettings:
    updates = {}
    if args.strategy is not None:
        updates["ai_strategy"] = args.strategy
    if args.allow_adjacent is not None:
        updates["allow_adjacent"] = args.allow_adjacent
    return base.model_copy(update=updates)


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    init_telemetry()
    play_game(settings_from_args(args, load_settings()), seed=args.seed)


if __name__ == "__main__":
    main()
