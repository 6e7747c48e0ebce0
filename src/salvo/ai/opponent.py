"""Computer-controlled opponent."""

from __future__ import annotations

import random
import time
from enum import Enum

from salvo.engine.fleet import AttackOutcome, Fleet
from salvo.engine.ship import Coordinate
from salvo.telemetry import get_logger, get_tracer, record_duration, record_game_metric

from .hunt_target import AIMemory, choose_random, choose_smart, update_after_attack


class Strategy(Enum):
    """Targeting strategies the computer can play."""

    RANDOM = "random"
    SMART = "smart"


class ComputerOpponent:
    """Owns a strategy, its random source and its hunt/target memory for one game."""

    def __init__(self, strategy: Strategy = Strategy.SMART, rng: random.Random | None = None) -> None:
        self.strategy = strategy
        self.rng = rng or random.Random()
        self.memory = AIMemory()
        self._logger = get_logger("salvo.ai")
        self._tracer = get_tracer("salvo.ai")

    def reset(self) -> None:
        """Forget everything learned about the previous game."""
        self.memory = AIMemory()

    def choose_target(self, fleet: Fleet) -> Coordinate:
        start = time.perf_counter()
        with self._tracer.start_as_current_span("salvo.ai.choose_target") as span:
            span.set_attribute("strategy", self.strategy.value)
            if self.strategy is Strategy.SMART:
                coord, self.memory = choose_smart(fleet, self.memory, self.rng)
                span.set_attribute("mode", self.memory.mode.value)
            else:
                coord = choose_random(fleet, self.rng)
            span.set_attribute("row", coord.row)
            span.set_attribute("col", coord.col)

            attrs = {"strategy": self.strategy.value}
            record_game_metric("salvo_ai_decisions_total", 1, attrs)
            record_duration("salvo_ai_decision_latency_ms", (time.perf_counter() - start) * 1000, attrs)
            self._logger.info(
                "choose_target strategy=%s coord=(%d,%d) mode=%s",
                self.strategy.value,
                coord.row,
                coord.col,
                self.memory.mode.value,
            )
            return coord

    def observe(self, coord: Coordinate, outcome: AttackOutcome, fleet: Fleet) -> None:
        """Feed back the resolved outcome of the last chosen target."""
        if self.strategy is Strategy.SMART:
            self.memory = update_after_attack(self.memory, coord, outcome, fleet)
