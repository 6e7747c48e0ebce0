"""Shapes exchanged with the shared room record and the move stream."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from salvo.engine.fleet import AttackOutcome
from salvo.engine.ship import Coordinate

from .snapshot import BoardModel


class Role(Enum):
    """Which side of a networked room a participant occupies."""

    HOST = "host"
    GUEST = "guest"

    def other(self) -> Role:
        return Role.GUEST if self is Role.HOST else Role.HOST


class RoomStatus(Enum):
    WAITING = "waiting"
    PLACING = "placing"
    PLAYING = "playing"
    FINISHED = "finished"


class MoveEvent(BaseModel):
    """One attack as stored in, and pushed from, the move log.

    ``id`` is the idempotency key; ``sequence`` orders the log.
    """

    id: str
    room_id: str
    player: Role
    coordinate: Coordinate
    result: AttackOutcome
    sequence: int = 0
    created_at: datetime | None = None


class RoomRecord(BaseModel):
    """The shared room row: the single source of truth for turn and winner."""

    id: str
    room_code: str | None = None
    status: RoomStatus = RoomStatus.WAITING
    host_player_name: str
    guest_player_name: str | None = None
    host_board: BoardModel | None = None
    guest_board: BoardModel | None = None
    host_ready: bool = False
    guest_ready: bool = False
    current_turn: Role | None = None
    winner: str | None = None
    winner_role: Role | None = None

    def board_for(self, role: Role) -> BoardModel | None:
        return self.host_board if role is Role.HOST else self.guest_board

    def player_name(self, role: Role) -> str | None:
        return self.host_player_name if role is Role.HOST else self.guest_player_name

    def is_ready(self, role: Role) -> bool:
        return self.host_ready if role is Role.HOST else self.guest_ready

    @property
    def has_winner(self) -> bool:
        return self.winner_role is not None or bool(self.winner)
