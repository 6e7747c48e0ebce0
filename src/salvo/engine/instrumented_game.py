"""GameSession with tracing, metrics and logging hooks."""

from __future__ import annotations

import time

from salvo.engine.fleet import AttackOutcome
from salvo.engine.game import GamePhase, GameSession, Seat
from salvo.engine.ship import Coordinate
from salvo.telemetry import get_logger, get_tracer, record_game_metric


class InstrumentedGameSession(GameSession):
    """Wraps GameSession so each match is one span with per-move children."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._logger = get_logger("salvo.engine")
        self._tracer = get_tracer("salvo.engine")
        self._game_span_cm = None
        self._game_span = None
        self._game_start_time: float | None = None
        self._moves = 0
        self._game_id_counter = 0

    def start(self, first: Seat = Seat.SELF) -> None:
        self._start_game_span()
        with self._tracer.start_as_current_span("salvo.engine.start") as span:
            super().start(first)
            span.set_attribute("first_turn", first.value)
            span.set_attribute("player_ships", len(self.player.ships))
            span.set_attribute("opponent_ships", len(self.opponent.ships))
            record_game_metric("salvo_game_started_total", 1, {"first_turn": first.value})
            self._logger.info("Game %d started, %s moves first", self._game_id_counter, first.value)

    def make_move(self, attacker: Seat, coord: Coordinate) -> AttackOutcome:
        with self._tracer.start_as_current_span("salvo.engine.make_move") as span:
            span.set_attribute("game.id", self._game_id_counter)
            span.set_attribute("attacker", attacker.value)
            span.set_attribute("coord.row", coord.row)
            span.set_attribute("coord.col", coord.col)

            try:
                outcome = super().make_move(attacker, coord)
            except (RuntimeError, ValueError) as exc:
                record_game_metric(
                    "salvo_game_invalid_moves_total",
                    1,
                    {"attacker": attacker.value, "reason": type(exc).__name__},
                )
                span.record_exception(exc)
                span.set_attribute("error", True)
                self._logger.error(
                    "Invalid move from %s at (%d,%d): %s", attacker.value, coord.row, coord.col, exc
                )
                raise

            span.set_attribute("outcome", outcome.value)
            record_game_metric(
                "salvo_attacks_by_outcome_total",
                1,
                {"attacker": attacker.value, "outcome": outcome.value},
            )
            if outcome.counts_as_move:
                self._moves += 1
            self._logger.info(
                "make_move attacker=%s coord=(%d,%d) outcome=%s",
                attacker.value,
                coord.row,
                coord.col,
                outcome.value,
            )

            if self.phase is GamePhase.FINISHED and self.winner is not None:
                span.set_attribute("winner", self.winner.value)
                self._finish_game()

            return outcome

    def _start_game_span(self) -> None:
        self._close_game_span()
        self._game_start_time = time.perf_counter()
        self._moves = 0
        self._game_id_counter += 1
        self._game_span_cm = self._tracer.start_as_current_span("salvo.engine.game")
        self._game_span = self._game_span_cm.__enter__()
        self._game_span.set_attribute("game.id", self._game_id_counter)

    def _finish_game(self) -> None:
        duration = (time.perf_counter() - self._game_start_time) if self._game_start_time else 0.0
        winner = self.winner.value if self.winner else "unknown"

        record_game_metric("salvo_game_completed_total", 1, {"winner": winner})
        record_game_metric("salvo_game_duration_seconds", duration, {"winner": winner})

        with self._tracer.start_as_current_span("salvo.engine.game_complete") as span:
            span.set_attribute("game.id", self._game_id_counter)
            span.set_attribute("winner", winner)
            span.set_attribute("moves", self._moves)

        if self._game_span is not None:
            self._game_span.set_attribute("winner", winner)
            self._game_span.set_attribute("moves", self._moves)
            self._game_span.set_attribute("duration_ms", duration * 1000)

        self._logger.info(
            "Game finished. winner=%s moves=%d duration_s=%.3f", winner, self._moves, duration
        )
        self._close_game_span()

    def _close_game_span(self) -> None:
        if self._game_span_cm is not None:
            self._game_span_cm.__exit__(None, None, None)
            self._game_span_cm = None
            self._game_span = None
