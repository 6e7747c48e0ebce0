"""Keeps a local GameSession consistent with a shared room and its move log.

Moves reach a participant twice: through a catch-up fetch of the whole log and
through a live push subscription, and the two can overlap. Everything funnels
through :meth:`MatchReconciler._gate`, which applies an event at most once per
event id. Live events that arrive before the remote board snapshot has been
installed are buffered and drained by :meth:`MatchReconciler.begin`.

Turn and winner are never derived from moves: the room record is the
authority, and every observed room update overwrites the local turn.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable

from salvo.engine.board import Board
from salvo.engine.fleet import AttackOutcome, Fleet, check_win
from salvo.engine.game import GamePhase, GameSession, Seat
from salvo.engine.ship import Coordinate
from salvo.telemetry import get_meter, get_tracer

from .messages import MoveEvent, Role, RoomRecord, RoomStatus
from .snapshot import extract_ships_from_board

logger = logging.getLogger(__name__)
tracer = get_tracer("salvo.sync.reconciler")
meter = get_meter("salvo.sync.reconciler")

MOVE_COUNTER = meter.create_counter(
    "salvo_sync_moves",
    unit="1",
    description="Move events seen by the reconciler, by disposition",
)


@dataclass(frozen=True)
class LocalAttack:
    """Result of a local attack, for the orchestrator to publish."""

    coordinate: Coordinate
    outcome: AttackOutcome
    declares_win: bool = False


class MatchReconciler:
    """Single-owner bridge between one participant's session and the room."""

    def __init__(self, session: GameSession, role: Role) -> None:
        self.session = session
        self.role = role
        self._processed: set[str] = set()
        self._pending: list[MoveEvent] = []

    @property
    def pending(self) -> tuple[MoveEvent, ...]:
        return tuple(self._pending)

    def seat_for(self, role: Role) -> Seat:
        return Seat.SELF if role is self.role else Seat.OPPONENT

    def is_processed(self, event_id: str) -> bool:
        return event_id in self._processed

    def reset(self) -> None:
        """Forget processed ids and buffered events, e.g. after switching rooms."""
        self._processed.clear()
        self._pending.clear()

    def acknowledge(self, event: MoveEvent) -> None:
        """Mark an event this side already applied locally (its own published attack)."""
        self._processed.add(event.id)

    def handle_room_update(self, room: RoomRecord) -> bool:
        """Apply an observed room record.

        Returns True when the room has started but the remote snapshot has not
        been installed yet, i.e. the caller should fetch the log and call
        :meth:`begin`.
        """
        if room.status not in (RoomStatus.PLAYING, RoomStatus.FINISHED):
            return False
        if self.session.phase is GamePhase.PLACEMENT:
            # Turn and winner are picked up by begin() once the snapshot is in.
            return room.board_for(self.role.other()) is not None

        if room.status is RoomStatus.FINISHED and room.has_winner:
            self._apply_winner(room)
        else:
            self._sync_turn(room)
        return False

    def begin(self, room: RoomRecord, moves: Iterable[MoveEvent]) -> None:
        """Install the remote snapshot, replay the log, then drain buffered moves.

        Everything is staged on copies first. If any event is rejected the
        session, the processed ids and the buffer are left exactly as they were,
        so ``begin`` can simply be retried.
        """
        with tracer.start_as_current_span("reconciler.begin") as span:
            span.set_attribute("role", self.role.value)
            span.set_attribute("room.id", room.id)
            remote = room.board_for(self.role.other())
            if remote is None:
                logger.error(
                    "begin_rejected_missing_snapshot",
                    extra={"room_id": room.id, "role": self.role.value},
                )
                raise RuntimeError("Remote board snapshot is not available yet.")

            staged = GameSession(
                player=self.session.player,
                opponent=self._rebuilt(self.session.opponent, remote.to_board()),
            )
            own = room.board_for(self.role)
            if not staged.player.ships and own is not None:
                staged.set_fleet(Seat.SELF, self._rebuilt(staged.player, own.to_board()))

            history = sorted(moves, key=lambda event: event.sequence)
            pending = sorted(self._pending, key=lambda event: event.sequence)
            for event in (*history, *pending):
                self._check_bounds(staged, event)

            processed = set(self._processed)
            for event in history:
                self._gate(event, "replay", staged, processed)
            for event in pending:
                self._gate(event, "buffer", staged, processed)

            self.session.set_fleet(Seat.SELF, staged.player)
            self.session.set_fleet(Seat.OPPONENT, staged.opponent)
            self._processed = processed
            self._pending = []

            self.session.phase = GamePhase.PLAYING
            self._sync_turn(room)
            if room.status is RoomStatus.FINISHED and room.has_winner:
                self._apply_winner(room)

            span.set_attribute("replayed", len(history))
            span.set_attribute("drained", len(pending))
            logger.info(
                "reconciler_started",
                extra={
                    "room_id": room.id,
                    "role": self.role.value,
                    "replayed": len(history),
                    "drained": len(pending),
                    "turn": self.session.turn.value,
                },
            )

    def handle_move(self, event: MoveEvent) -> AttackOutcome | None:
        """Apply a live move, or buffer it until :meth:`begin` has run."""
        if self.session.phase is GamePhase.PLACEMENT:
            self._pending.append(event)
            MOVE_COUNTER.add(1, attributes={"disposition": "buffered", "role": self.role.value})
            logger.debug("move_buffered", extra={"event_id": event.id, "role": self.role.value})
            return None
        return self._gate(event, "live", self.session, self._processed)

    def attack(self, coord: Coordinate) -> LocalAttack:
        """Resolve a local attack on the opponent view.

        The turn is left alone; it changes only when the room says so.
        """
        if self.session.phase is not GamePhase.PLAYING:
            logger.error("attack_rejected_not_playing", extra={"phase": self.session.phase.value})
            raise RuntimeError("Game is not in progress.")
        if self.session.turn is not Seat.SELF:
            logger.error("attack_rejected_wrong_turn", extra={"role": self.role.value})
            raise RuntimeError("It is not this side's turn.")

        outcome = self.session.apply_attack(Seat.SELF, coord, detect_win=False)
        declares_win = outcome is AttackOutcome.SUNK and check_win(self.session.opponent)
        if declares_win:
            self.session.declare_winner(Seat.SELF)
        return LocalAttack(coordinate=coord, outcome=outcome, declares_win=declares_win)

    def _gate(
        self, event: MoveEvent, source: str, session: GameSession, processed: set[str]
    ) -> AttackOutcome | None:
        if event.id in processed:
            MOVE_COUNTER.add(1, attributes={"disposition": "duplicate", "role": self.role.value})
            logger.debug("move_duplicate_dropped", extra={"event_id": event.id, "source": source})
            return None

        attacker = self.seat_for(event.player)
        outcome = session.apply_attack(attacker, event.coordinate, detect_win=False)
        processed.add(event.id)
        MOVE_COUNTER.add(1, attributes={"disposition": "applied", "role": self.role.value})
        logger.info(
            "move_applied",
            extra={
                "event_id": event.id,
                "source": source,
                "attacker": attacker.value,
                "row": event.coordinate.row,
                "col": event.coordinate.col,
                "outcome": outcome.value,
            },
        )
        return outcome

    def _check_bounds(self, session: GameSession, event: MoveEvent) -> None:
        defender = session.fleet(self.seat_for(event.player).other())
        if not defender.board.contains(event.coordinate):
            logger.error(
                "move_rejected_out_of_bounds",
                extra={
                    "event_id": event.id,
                    "row": event.coordinate.row,
                    "col": event.coordinate.col,
                },
            )
            raise ValueError(f"Move {event.id} targets a cell outside the board.")

    @staticmethod
    def _rebuilt(fleet: Fleet, board: Board) -> Fleet:
        return replace(fleet, board=board, ships=tuple(extract_ships_from_board(board)))

    def _sync_turn(self, room: RoomRecord) -> None:
        if room.current_turn is None:
            return
        turn = self.seat_for(room.current_turn)
        if turn is not self.session.turn:
            logger.debug("turn_overwritten", extra={"turn": turn.value})
        self.session.turn = turn

    def _apply_winner(self, room: RoomRecord) -> None:
        if room.winner_role is not None:
            winner = self.seat_for(room.winner_role)
        else:
            # Rooms written without a role only carry the winner's name.
            winner = Seat.SELF if room.winner == room.player_name(self.role) else Seat.OPPONENT
        if self.session.winner is not winner or self.session.phase is not GamePhase.FINISHED:
            self.session.declare_winner(winner)
