"""Board, fleet and match rules."""

from .board import Board, Cell, CellStatus, create_board, is_valid_placement
from .errors import InvalidPlacement, PlacementExhausted
from .fleet import (
    AttackOutcome,
    Fleet,
    check_win,
    create_fleet,
    place_ship,
    place_ships_randomly,
    receive_attack,
)
from .game import GamePhase, GameSession, Seat, SessionState
from .ship import BOARD_SIZE, SHIP_LENGTHS, Coordinate, Orientation, Ship, ShipType

__all__ = [
    "AttackOutcome",
    "BOARD_SIZE",
    "Board",
    "Cell",
    "CellStatus",
    "Coordinate",
    "Fleet",
    "GamePhase",
    "GameSession",
    "InvalidPlacement",
    "Orientation",
    "PlacementExhausted",
    "SHIP_LENGTHS",
    "Seat",
    "SessionState",
    "Ship",
    "ShipType",
    "check_win",
    "create_board",
    "create_fleet",
    "is_valid_placement",
    "place_ship",
    "place_ships_randomly",
    "receive_attack",
]
