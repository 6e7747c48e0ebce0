"""Keeping a remotely-held copy of a match consistent."""

from .messages import MoveEvent, Role, RoomRecord, RoomStatus
from .reconciler import LocalAttack, MatchReconciler
from .snapshot import (
    BoardModel,
    CellModel,
    board_from_data,
    board_to_data,
    extract_ships_from_board,
)

__all__ = [
    "BoardModel",
    "CellModel",
    "LocalAttack",
    "MatchReconciler",
    "MoveEvent",
    "Role",
    "RoomRecord",
    "RoomStatus",
    "board_from_data",
    "board_to_data",
    "extract_ships_from_board",
]
