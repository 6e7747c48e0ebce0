"""Tests for the move-stream reconciliation protocol."""

import random

import pytest

from salvo.ai.opponent import ComputerOpponent, Strategy
from salvo.engine.fleet import AttackOutcome, create_fleet, place_ships_randomly
from salvo.engine.game import GamePhase, GameSession, Seat
from salvo.engine.ship import Coordinate
from salvo.sync.messages import MoveEvent, Role, RoomRecord, RoomStatus
from salvo.sync.reconciler import MatchReconciler
from salvo.sync.snapshot import BoardModel


def _start(match):
    host, guest = match
    host.ready()
    guest.ready()
    return host, guest


def _assert_mirrored(host, guest) -> None:
    assert host.session.opponent.board == guest.session.player.board
    assert guest.session.opponent.board == host.session.player.board
    by_id = lambda ships: sorted(ships, key=lambda ship: ship.id)  # noqa: E731
    assert by_id(host.session.opponent.ships) == by_id(guest.session.player.ships)
    assert by_id(guest.session.opponent.ships) == by_id(host.session.player.ships)


def _event(event_id: str, player: Role, coord: Coordinate, sequence: int) -> MoveEvent:
    return MoveEvent(
        id=event_id,
        room_id="room-1",
        player=player,
        coordinate=coord,
        result=AttackOutcome.MISS,
        sequence=sequence,
    )


def test_ready_handshake_installs_remote_fleets(match) -> None:
    host, guest = _start(match)
    for side in (host, guest):
        assert side.session.phase is GamePhase.PLAYING
        assert len(side.session.opponent.ships) == 5
    assert host.session.turn is Seat.SELF
    assert guest.session.turn is Seat.OPPONENT
    _assert_mirrored(host, guest)


def test_full_match_stays_consistent_and_declares_winner(match, server) -> None:
    host, guest = _start(match)
    brains = {
        Role.HOST: ComputerOpponent(Strategy.SMART, random.Random(1)),
        Role.GUEST: ComputerOpponent(Strategy.RANDOM, random.Random(2)),
    }

    turns = 0
    while server.rooms[host.room_id].status is RoomStatus.PLAYING:
        room = server.rooms[host.room_id]
        side = host if room.current_turn is Role.HOST else guest
        assert side.session.turn is Seat.SELF
        coord = brains[side.role].choose_target(side.session.opponent)
        attack = side.fire(coord)
        assert attack.outcome is not AttackOutcome.ALREADY_ATTACKED
        brains[side.role].observe(coord, attack.outcome, side.session.opponent)
        _assert_mirrored(host, guest)
        turns += 1
        assert turns <= 200

    room = server.rooms[host.room_id]
    winner, loser = (host, guest) if room.winner_role is Role.HOST else (guest, host)
    assert winner.session.winner is Seat.SELF
    assert loser.session.winner is Seat.OPPONENT
    assert winner.session.phase is loser.session.phase is GamePhase.FINISHED
    assert all(ship.sunk for ship in winner.session.opponent.ships)


def test_own_echoed_move_is_a_no_op(match, server) -> None:
    host, guest = _start(match)
    before = host.session.opponent
    attack = host.reconciler.attack(Coordinate(0, 0))
    after_local = host.session.opponent
    assert after_local is not before

    event = server.make_move(host.room_id, Role.HOST, Coordinate(0, 0), attack.outcome)
    assert host.reconciler.is_processed(event.id)
    assert host.session.opponent is after_local
    _assert_mirrored(host, guest)


def test_acknowledged_event_is_not_reapplied(match) -> None:
    host, _ = _start(match)
    event = _event("mine", Role.GUEST, Coordinate(4, 4), 1)
    host.reconciler.acknowledge(event)
    assert host.reconciler.handle_move(event) is None
    assert not host.session.player.board.is_attacked(Coordinate(4, 4))


def test_duplicate_live_event_is_dropped(match) -> None:
    host, _ = _start(match)
    event = _event("e1", Role.GUEST, Coordinate(3, 3), 1)
    assert host.reconciler.handle_move(event) is not None
    snapshot = host.session.player
    assert host.reconciler.handle_move(event) is None
    assert host.session.player is snapshot


def test_replaying_the_log_twice_matches_replaying_once(match, server) -> None:
    host, guest = _start(match)
    for coord in (Coordinate(0, 0), Coordinate(1, 1)):
        host.fire(coord)
        guest.fire(coord)

    room = server.rooms[host.room_id]
    log = server.get_moves(host.room_id)

    fresh_once = _rejoined(room, Role.GUEST)
    fresh_once.begin(room, log)
    fresh_twice = _rejoined(room, Role.GUEST)
    fresh_twice.begin(room, log + log)

    assert fresh_once.session.player == fresh_twice.session.player
    assert fresh_once.session.opponent == fresh_twice.session.opponent
    assert fresh_once.session.player.board == guest.session.player.board
    assert fresh_once.session.opponent.board == guest.session.opponent.board


def _rejoined(room: RoomRecord, role: Role) -> MatchReconciler:
    session = GameSession(
        player=create_fleet(role.value, room.player_name(role) or ""),
        opponent=create_fleet("remote", "Remote"),
    )
    return MatchReconciler(session, role)


def test_rejoin_restores_own_fleet_and_hits(match, server) -> None:
    host, guest = _start(match)
    target = host.session.opponent.ships[0].position[0]
    assert host.fire(target).outcome is AttackOutcome.HIT

    room = server.rooms[host.room_id]
    rejoined = _rejoined(room, Role.GUEST)
    assert rejoined.handle_room_update(room)
    rejoined.begin(room, server.get_moves(room.id))

    assert rejoined.session.phase is GamePhase.PLAYING
    assert rejoined.session.turn is Seat.SELF
    assert rejoined.session.player.board == guest.session.player.board
    assert rejoined.session.opponent.board == guest.session.opponent.board
    assert sum(ship.hits for ship in rejoined.session.player.ships) == 1


def test_live_moves_during_replay_are_buffered_then_drained(match, server) -> None:
    host, guest = _start(match)
    host.fire(Coordinate(0, 0))
    guest.fire(Coordinate(0, 0))

    room = server.rooms[host.room_id]
    fetched = server.get_moves(room.id)

    late = _rejoined(room, Role.GUEST)
    # The fetch is in flight: one already-logged move and one brand-new move arrive live.
    overlap = fetched[0]
    fresh = _event("move-99", Role.HOST, Coordinate(5, 5), 99)
    assert late.handle_move(overlap) is None
    assert late.handle_move(fresh) is None
    assert late.pending == (overlap, fresh)
    assert not late.session.player.board.is_attacked(Coordinate(0, 0))

    late.begin(room, fetched)

    assert late.pending == ()
    assert late.is_processed("move-99")
    assert late.session.player.board.is_attacked(Coordinate(5, 5))
    assert late.session.player.board.is_attacked(Coordinate(0, 0))
    assert late.session.opponent.board.is_attacked(Coordinate(0, 0))
    hits = [c for c in late.session.player.board.iter_cells() if c.status.attacked]
    assert len(hits) == 2


def test_room_turn_always_overrides_local_turn(match, server) -> None:
    host, _ = _start(match)
    host.session.turn = Seat.OPPONENT
    room = server.rooms[host.room_id].model_copy(update={"current_turn": Role.HOST})
    host.reconciler.handle_room_update(room)
    assert host.session.turn is Seat.SELF

    room = room.model_copy(update={"current_turn": Role.GUEST})
    host.reconciler.handle_room_update(room)
    assert host.session.turn is Seat.OPPONENT


def test_local_attack_does_not_flip_turn(match) -> None:
    host, _ = _start(match)
    host.reconciler.attack(Coordinate(2, 2))
    assert host.session.turn is Seat.SELF


def test_attack_rules(match) -> None:
    _, guest = _start(match)
    with pytest.raises(RuntimeError):
        guest.reconciler.attack(Coordinate(0, 0))

    lobby = _rejoined(RoomRecord(id="r", host_player_name="Hana"), Role.HOST)
    with pytest.raises(RuntimeError):
        lobby.attack(Coordinate(0, 0))


def test_begin_requires_remote_snapshot() -> None:
    room = RoomRecord(
        id="r",
        host_player_name="Hana",
        guest_player_name="Gus",
        status=RoomStatus.PLAYING,
        current_turn=Role.HOST,
        host_board=BoardModel.from_board(create_fleet("h", "Hana").board),
    )
    reconciler = _rejoined(room, Role.HOST)
    assert reconciler.handle_room_update(room) is False
    with pytest.raises(RuntimeError):
        reconciler.begin(room, [])


def test_room_updates_before_start_are_ignored(match, server) -> None:
    host, _ = match
    room = server.rooms[host.room_id]
    assert room.status is RoomStatus.PLACING
    assert host.reconciler.handle_room_update(room) is False
    assert host.session.phase is GamePhase.PLACEMENT


def test_finished_room_sets_winner(match, server) -> None:
    host, guest = _start(match)
    server.set_winner(host.room_id, Role.GUEST)
    assert host.session.winner is Seat.OPPONENT
    assert guest.session.winner is Seat.SELF
    assert host.session.phase is GamePhase.FINISHED


def test_reset_clears_gate_and_buffer() -> None:
    reconciler = _rejoined(RoomRecord(id="r", host_player_name="Hana"), Role.HOST)
    event = _event("e1", Role.GUEST, Coordinate(1, 1), 1)
    reconciler.handle_move(event)
    reconciler.acknowledge(_event("e2", Role.HOST, Coordinate(2, 2), 2))
    reconciler.reset()
    assert reconciler.pending == ()
    assert not reconciler.is_processed("e2")


def _finished_room(host_name: str, guest_name: str, **winner) -> RoomRecord:
    return RoomRecord(
        id="r",
        host_player_name=host_name,
        guest_player_name=guest_name,
        status=RoomStatus.FINISHED,
        current_turn=Role.GUEST,
        host_board=BoardModel.from_board(_placed_board(1)),
        guest_board=BoardModel.from_board(_placed_board(2)),
        **winner,
    )


def _placed_board(seed: int):
    return place_ships_randomly(create_fleet("f", "F"), rng=random.Random(seed)).board


def test_winner_role_settles_players_with_the_same_name() -> None:
    room = _finished_room("Sam", "Sam", winner="Sam", winner_role=Role.HOST)

    host = _rejoined(room, Role.HOST)
    guest = _rejoined(room, Role.GUEST)
    host.begin(room, [])
    guest.begin(room, [])

    assert host.session.winner is Seat.SELF
    assert guest.session.winner is Seat.OPPONENT


def test_winner_name_is_used_when_role_is_missing() -> None:
    room = _finished_room("Hana", "Gus", winner="Gus")
    host = _rejoined(room, Role.HOST)
    host.begin(room, [])
    assert host.session.winner is Seat.OPPONENT
    assert host.session.phase is GamePhase.FINISHED


def test_failed_begin_leaves_everything_untouched_and_can_be_retried(match, server) -> None:
    host, _ = _start(match)
    room = server.rooms[host.room_id]

    late = _rejoined(room, Role.GUEST)
    good = _event("m1", Role.GUEST, Coordinate(0, 0), 1)
    bad = _event("m2", Role.GUEST, Coordinate(10, 10), 2)
    opponent_before = late.session.opponent

    with pytest.raises(ValueError):
        late.begin(room, [good, bad])

    assert late.session.phase is GamePhase.PLACEMENT
    assert late.session.opponent is opponent_before
    assert not late.is_processed("m1")

    late.begin(room, [good])
    assert late.is_processed("m1")
    assert late.session.opponent.board.is_attacked(Coordinate(0, 0))


def test_failed_drain_keeps_buffered_moves(match, server) -> None:
    host, _ = _start(match)
    room = server.rooms[host.room_id]

    late = _rejoined(room, Role.GUEST)
    broken = _event("b1", Role.HOST, Coordinate(-1, 3), 1)
    valid = _event("b2", Role.HOST, Coordinate(2, 3), 2)
    late.handle_move(broken)
    late.handle_move(valid)

    with pytest.raises(ValueError):
        late.begin(room, [])

    assert late.pending == (broken, valid)
    assert not late.is_processed("b2")
    assert not late.session.player.ships
