"""Two-fleet match controller."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from salvo.telemetry import get_meter, get_tracer

from .fleet import AttackOutcome, Fleet, check_win, create_fleet, receive_attack
from .ship import Coordinate

logger = logging.getLogger(__name__)
tracer = get_tracer("salvo.engine.game")
meter = get_meter("salvo.engine.game")

MOVE_COUNTER = meter.create_counter(
    "salvo_engine_moves",
    unit="1",
    description="Number of moves made in a GameSession",
)


class GamePhase(Enum):
    """High-level lifecycle of a match."""

    PLACEMENT = "placement"
    PLAYING = "playing"
    FINISHED = "finished"


class Seat(Enum):
    """The two sides of a session, seen from the local player."""

    SELF = "self"
    OPPONENT = "opponent"

    def other(self) -> Seat:
        """Return the opposing seat."""
        return Seat.OPPONENT if self is Seat.SELF else Seat.SELF


@dataclass(frozen=True)
class SessionState:
    """Immutable snapshot of the current match."""

    phase: GamePhase
    turn: Seat
    winner: Seat | None
    player: Fleet
    opponent: Fleet


class GameSession:
    """Holds both fleets and drives the turn-alternating state machine."""

    def __init__(self, player: Fleet | None = None, opponent: Fleet | None = None) -> None:
        self.player: Fleet = player or create_fleet("player", "Player")
        self.opponent: Fleet = opponent or create_fleet("opponent", "Opponent", is_computer=True)
        self.phase: GamePhase = GamePhase.PLACEMENT
        self.turn: Seat = Seat.SELF
        self.winner: Seat | None = None

    def fleet(self, seat: Seat) -> Fleet:
        return self.player if seat is Seat.SELF else self.opponent

    def set_fleet(self, seat: Seat, fleet: Fleet) -> None:
        if seat is Seat.SELF:
            self.player = fleet
        else:
            self.opponent = fleet

    def start(self, first: Seat = Seat.SELF) -> None:
        """Leave the placement phase once both fleets are set up."""
        if self.phase is not GamePhase.PLACEMENT:
            raise RuntimeError("Game has already started.")
        if not self.player.ships or not self.opponent.ships:
            logger.error(
                "start_rejected_missing_fleet",
                extra={
                    "player_ships": len(self.player.ships),
                    "opponent_ships": len(self.opponent.ships),
                },
            )
            raise RuntimeError("Both fleets must be placed before the game starts.")
        self.phase = GamePhase.PLAYING
        self.turn = first
        self.winner = None
        logger.info("game_started", extra={"first_turn": first.value})

    def apply_attack(
        self, attacker: Seat, coord: Coordinate, detect_win: bool = True
    ) -> AttackOutcome:
        """Resolve ``attacker``'s shot on the other fleet without touching the turn."""
        defender = attacker.other()
        updated, outcome = receive_attack(self.fleet(defender), coord)
        self.set_fleet(defender, updated)
        if detect_win and outcome is AttackOutcome.SUNK and check_win(updated):
            self.declare_winner(attacker)
        return outcome

    def declare_winner(self, seat: Seat) -> None:
        self.winner = seat
        self.phase = GamePhase.FINISHED
        logger.info("game_finished", extra={"winner": seat.value})

    def make_move(self, attacker: Seat, coord: Coordinate) -> AttackOutcome:
        """Apply a single attack, enforcing turn order and win conditions.

        A repeated coordinate is a no-op: the turn stays with ``attacker``.
        """
        with tracer.start_as_current_span("game.make_move") as span:
            span.set_attribute("attacker", attacker.value)
            span.set_attribute("row", coord.row)
            span.set_attribute("col", coord.col)
            if self.phase is not GamePhase.PLAYING:
                logger.error(
                    "move_rejected_game_not_playing",
                    extra={"attacker": attacker.value, "phase": self.phase.value},
                )
                raise RuntimeError("Game is not in progress.")
            if attacker is not self.turn:
                logger.error(
                    "move_rejected_wrong_turn",
                    extra={"attacker": attacker.value, "current": self.turn.value},
                )
                raise RuntimeError("It is not this side's turn.")

            outcome = self.apply_attack(attacker, coord)
            span.set_attribute("outcome", outcome.value)
            if not outcome.counts_as_move:
                return outcome

            if self.phase is GamePhase.FINISHED:
                span.set_attribute("game.winner", attacker.value)
            else:
                self.turn = attacker.other()
                span.set_attribute("next_turn", self.turn.value)

            MOVE_COUNTER.add(1, attributes={"outcome": outcome.value, "attacker": attacker.value})
            return outcome

    def valid_targets(self, attacker: Seat) -> list[Coordinate]:
        """Return all coordinates ``attacker`` can still fire at."""
        if self.phase is not GamePhase.PLAYING:
            return []
        return self.fleet(attacker.other()).board.unattacked()

    def get_state(self) -> SessionState:
        return SessionState(
            phase=self.phase,
            turn=self.turn,
            winner=self.winner,
            player=self.player,
            opponent=self.opponent,
        )
