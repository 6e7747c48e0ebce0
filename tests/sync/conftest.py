"""In-memory stand-in for the shared room store and its push channels."""

from __future__ import annotations

import random
from typing import Callable

import pytest

from salvo.engine.board import Board
from salvo.engine.fleet import AttackOutcome, create_fleet, place_ships_randomly
from salvo.engine.game import GameSession
from salvo.engine.ship import Coordinate
from salvo.sync.messages import MoveEvent, Role, RoomRecord, RoomStatus
from salvo.sync.reconciler import MatchReconciler
from salvo.sync.snapshot import BoardModel


class FakeRoomServer:
    """Synchronous room store: every write is pushed to subscribers immediately."""

    def __init__(self) -> None:
        self.rooms: dict[str, RoomRecord] = {}
        self.moves: dict[str, list[MoveEvent]] = {}
        self.room_subscribers: dict[str, list[Callable[[RoomRecord], None]]] = {}
        self.move_subscribers: dict[str, list[Callable[[MoveEvent], None]]] = {}

    def create_room(self, host: str) -> RoomRecord:
        room = RoomRecord(id=f"room-{len(self.rooms) + 1}", room_code="TEST", host_player_name=host)
        self.rooms[room.id] = room
        self.moves[room.id] = []
        return room

    def join_room(self, room_id: str, guest: str) -> RoomRecord:
        return self._update(room_id, guest_player_name=guest, status=RoomStatus.PLACING)

    def set_player_board(self, room_id: str, role: Role, board: Board) -> RoomRecord:
        return self._update(
            room_id,
            **{f"{role.value}_board": BoardModel.from_board(board), f"{role.value}_ready": True},
        )

    def check_and_start(self, room_id: str, first: Role = Role.HOST) -> bool:
        room = self.rooms[room_id]
        if room.status is not RoomStatus.PLACING or not (room.host_ready and room.guest_ready):
            return False
        self._update(room_id, status=RoomStatus.PLAYING, current_turn=first)
        return True

    def make_move(
        self, room_id: str, role: Role, coord: Coordinate, result: AttackOutcome
    ) -> MoveEvent:
        log = self.moves[room_id]
        event = MoveEvent(
            id=f"move-{len(log) + 1}",
            room_id=room_id,
            player=role,
            coordinate=coord,
            result=result,
            sequence=len(log) + 1,
        )
        log.append(event)
        for callback in list(self.move_subscribers.get(room_id, [])):
            callback(event)
        self._update(room_id, current_turn=role.other())
        return event

    def set_winner(self, room_id: str, role: Role) -> RoomRecord:
        name = self.rooms[room_id].player_name(role)
        return self._update(room_id, status=RoomStatus.FINISHED, winner=name, winner_role=role)

    def get_moves(self, room_id: str) -> list[MoveEvent]:
        return list(self.moves[room_id])

    def subscribe_to_room(self, room_id: str, callback: Callable[[RoomRecord], None]) -> None:
        self.room_subscribers.setdefault(room_id, []).append(callback)

    def subscribe_to_moves(self, room_id: str, callback: Callable[[MoveEvent], None]) -> None:
        self.move_subscribers.setdefault(room_id, []).append(callback)

    def _update(self, room_id: str, **changes) -> RoomRecord:
        room = self.rooms[room_id].model_copy(update=changes)
        self.rooms[room_id] = room
        for callback in list(self.room_subscribers.get(room_id, [])):
            callback(room)
        return room


class Participant:
    """Thin orchestrator wiring one reconciler to the fake server."""

    def __init__(self, server: FakeRoomServer, room_id: str, role: Role, name: str, seed: int):
        self.server = server
        self.room_id = room_id
        self.role = role
        fleet = place_ships_randomly(create_fleet(role.value, name), rng=random.Random(seed))
        self.session = GameSession(player=fleet, opponent=create_fleet("remote", "Remote"))
        self.reconciler = MatchReconciler(self.session, role)

    def subscribe(self) -> None:
        self.server.subscribe_to_room(self.room_id, self.on_room)
        self.server.subscribe_to_moves(self.room_id, self.reconciler.handle_move)

    def on_room(self, room: RoomRecord) -> None:
        if self.reconciler.handle_room_update(room):
            self.reconciler.begin(room, self.server.get_moves(self.room_id))

    def ready(self) -> None:
        self.server.set_player_board(self.room_id, self.role, self.session.player.board)
        self.server.check_and_start(self.room_id)

    def fire(self, coord: Coordinate):
        attack = self.reconciler.attack(coord)
        self.server.make_move(self.room_id, self.role, coord, attack.outcome)
        if attack.declares_win:
            self.server.set_winner(self.room_id, self.role)
        return attack


@pytest.fixture
def server() -> FakeRoomServer:
    return FakeRoomServer()


@pytest.fixture
def match(server: FakeRoomServer) -> tuple[Participant, Participant]:
    room = server.create_room("Hana")
    server.join_room(room.id, "Gus")
    host = Participant(server, room.id, Role.HOST, "Hana", seed=11)
    guest = Participant(server, room.id, Role.GUEST, "Gus", seed=22)
    host.subscribe()
    guest.subscribe()
    return host, guest
